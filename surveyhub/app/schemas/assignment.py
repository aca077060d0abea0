"""Pydantic schemes for survey assignments.
"""
# app/schemas/assignment.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class AssignIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    survey_id: int
    user_id: Optional[int] = None
    email: Optional[str] = None

    @model_validator(mode="after")
    def user_or_email(self):
        if self.user_id is None and not self.email:
            raise ValueError("Either user_id or email is required")
        return self


class AssignmentOut(BaseModel):
    id: int
    survey_id: int
    user_id: int
    assigned_by: int | None = None
    assigned_at: datetime | None = None
    is_removed: bool

    class Config:
        from_attributes = True


class AssignResult(BaseModel):
    message: str
    assignment: AssignmentOut


class AutoAssignOut(BaseModel):
    message: str
    assignment_count: int
    total_users: int
    errors: Optional[List[dict]] = None
