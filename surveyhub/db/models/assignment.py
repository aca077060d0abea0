# db/models/assignment.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from surveyhub.db import Base


class SurveyAssignment(Base):
    __tablename__ = "survey_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    # soft delete keeps the assignment history
    is_removed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    removed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    survey = relationship("Survey", back_populates="assignments")
    user = relationship("User", back_populates="assignments", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_assignment_survey_user"),
    )
