# app/schemas/user.py
from pydantic import BaseModel
from surveyhub.db.models import UserRole


class UserBrief(BaseModel):
    id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole

    class Config:
        from_attributes = True
