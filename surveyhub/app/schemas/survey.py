"""Pydantic schemes for surveys, questions and options.
"""
# app/schemas/survey.py
from datetime import datetime, timezone
from typing import List, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from surveyhub.db.models import QuestionType


class _WireModel(BaseModel):
    # accepts both camelCase (web clients) and snake_case field names
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # timestamps without an offset are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OptionIn(_WireModel):
    text: str = Field(min_length=1)
    is_default: bool = False


class QuestionIn(_WireModel):
    id: Optional[int] = None
    text: str = Field(min_length=1)
    type: QuestionType
    is_required: bool = False
    has_other: bool = False
    description: Optional[str] = None
    order: int = 0
    options: List[Union[OptionIn, str]] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_options(self):
        self.options = [OptionIn(text=o) if isinstance(o, str) else o for o in self.options]
        if self.type.is_choice and len(self.options) < 2:
            raise ValueError(f"At least 2 options are required for {self.type.value} questions")
        if not self.type.is_choice and self.options:
            raise ValueError(f"Options are not allowed for {self.type.value} questions")
        return self


class SurveyCreate(_WireModel):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    is_published: bool = False
    is_anonymous: bool = False
    is_public: bool = False
    start_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("startDateTime", "startAt", "start_at"))
    end_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("endDateTime", "endAt", "end_at"))
    questions: List[QuestionIn] = Field(default_factory=list)

    @field_validator("start_at", "end_at")
    @classmethod
    def aware_window(cls, v):
        return _utc(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class SurveyUpdate(_WireModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    is_published: Optional[bool] = None
    is_anonymous: Optional[bool] = None
    is_public: Optional[bool] = None
    start_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("startDateTime", "startAt", "start_at"))
    end_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("endDateTime", "endAt", "end_at"))
    questions: Optional[List[QuestionIn]] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def aware_window(cls, v):
        return _utc(v)


class OptionOut(BaseModel):
    id: int
    text: str
    position: int
    is_default: bool

    class Config:
        from_attributes = True


class QuestionOut(BaseModel):
    id: int
    survey_id: int
    text: str
    question_type: QuestionType
    is_required: bool
    has_other: bool
    description: str | None = None
    position: int
    options: List[OptionOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SurveyOut(BaseModel):
    id: int
    title: str
    description: str | None = None
    user_id: int | None = None
    is_published: bool
    is_anonymous: bool
    is_public: bool
    is_archived: bool
    start_at: datetime | None = None
    end_at: datetime | None = None
    archived_at: datetime | None = None
    retention_end_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    questions: List[QuestionOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SurveyWithCompletedOut(SurveyOut):
    completed: bool | None = None


class SurveyPage(BaseModel):
    total: int
    page: int
    limit: int
    surveys: List[SurveyOut]


class PublishToggleOut(BaseModel):
    message: str
    is_published: bool
