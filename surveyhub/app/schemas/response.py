"""Pydantic schemes for submitted and stored responses.
"""
# app/schemas/response.py
from datetime import datetime
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AnswerIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # kept loose: unusable ids are dropped during intake instead of failing the request
    question_id: Any = None
    value: Union[str, int, float, List[Union[str, int]], None] = None


class ResponseCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    survey_id: int = Field(le=2**63 - 1)
    answers: List[AnswerIn] = Field(default_factory=list)

    @field_validator("survey_id", mode="before")
    @classmethod
    def unwrap_survey(cls, v):
        # some clients send the whole survey object
        if isinstance(v, dict):
            return v.get("id")
        return v


class AnswerOut(BaseModel):
    id: int
    question_id: int
    value: str

    class Config:
        from_attributes = True


class SelectedOptionOut(BaseModel):
    question_id: int
    option_id: int

    class Config:
        from_attributes = True


class ResponseOut(BaseModel):
    id: int
    survey_id: int
    user_id: Optional[int] = None
    respondent_email: Optional[str] = None
    submitted_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    answers: List[AnswerOut] = Field(default_factory=list)
    selected_options: List[SelectedOptionOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
