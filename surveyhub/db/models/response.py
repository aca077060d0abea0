# db/models/response.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, func
from surveyhub.db import Base


class Response(Base):
    __tablename__ = "responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL for anonymous surveys
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    respondent_email: Mapped[str | None] = mapped_column(String, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)

    survey = relationship("Survey", back_populates="responses")
    answers = relationship("Answer", back_populates="response", cascade="all, delete-orphan",
                           order_by="Answer.id")
    selected_options = relationship("SelectedOption", back_populates="response", cascade="all, delete-orphan",
                                    order_by="SelectedOption.id")

    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_response_survey_user"),
    )


class Answer(Base):
    __tablename__ = "answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    response_id: Mapped[int] = mapped_column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    response = relationship("Response", back_populates="answers")
    question = relationship("Question")


class SelectedOption(Base):
    __tablename__ = "selected_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    response_id: Mapped[int] = mapped_column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    option_id: Mapped[int] = mapped_column(Integer, ForeignKey("question_options.id", ondelete="CASCADE"), nullable=False, index=True)

    response = relationship("Response", back_populates="selected_options")
    option = relationship("QuestionOption")


class AnonymousSurveyResponse(Base):
    """Marks that a user completed an anonymous survey, without linking the answers."""
    __tablename__ = "anonymous_survey_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    survey = relationship("Survey", back_populates="anonymous_records")

    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_anonymous_survey_user"),
    )
