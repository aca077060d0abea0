"""Pydantic schemes for data retention and audit logs.
"""
# app/schemas/audit.py
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RetentionIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    retention_end_date: datetime


class AuditLogOut(BaseModel):
    id: int
    user_id: int
    action: str
    entity_type: str
    entity_id: int
    details: dict | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
    total_pages: int
