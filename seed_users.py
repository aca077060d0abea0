#!/usr/bin/env python
"""Create a demo admin and respondent and print bearer tokens for them."""
from sqlalchemy import select
from surveyhub.db import Base
from surveyhub.db.session import LocalSession, engine
from surveyhub.db.models import User, UserRole
from surveyhub.app.services.tokens import issue_access_token


def get_or_create(db, email, **kwargs):
    obj = db.scalar(select(User).where(User.email == email))
    if obj:
        return obj
    obj = User(email=email, **kwargs)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def main():
    Base.metadata.create_all(bind=engine)
    db = LocalSession()
    try:
        admin = get_or_create(db, "admin@example.com", username="admin", first_name="Ada", last_name="Admin",
                              role=UserRole.admin)
        user = get_or_create(db, "user@example.com", username="user", first_name="Uma", last_name="User",
                             role=UserRole.user)

        print("Seeded users:")
        print(f"admin id={admin.id} token={issue_access_token(admin.id)}")
        print(f"user  id={user.id} token={issue_access_token(user.id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
