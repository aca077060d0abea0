# db/models/question.py
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Boolean, Enum, ForeignKey
from surveyhub.db import Base
import enum


class QuestionType(str, enum.Enum):
    single_choice = "single-choice"
    multiple_choice = "multiple-choice"
    rating = "rating"
    text = "text"
    date = "date"
    number = "number"

    @classmethod
    def _missing_(cls, value):
        # wire-format aliases sent by older clients
        aliases = {
            "multiple_choice": cls.multiple_choice,
            "multi_select": cls.multiple_choice,
            "checkbox": cls.multiple_choice,
            "dropdown": cls.single_choice,
            "radio": cls.single_choice,
            "free_text": cls.text,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None

    @property
    def is_choice(self) -> bool:
        return self in (QuestionType.single_choice, QuestionType.multiple_choice)


class QuestionOption(Base):
    __tablename__ = "question_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    question = relationship("Question", back_populates="options")


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(String, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(
        Enum(QuestionType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_other: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    survey = relationship("Survey", back_populates="questions")
    options = relationship("QuestionOption", back_populates="question", cascade="all, delete-orphan",
                           order_by="QuestionOption.position")
