"""Shared fixtures: in-memory SQLite, a request client and model factories.

Requests and test code share one Session so rows created in a test are
visible to the endpoint and the other way round.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from surveyhub.app.main import app
from surveyhub.app.services.tokens import issue_access_token
from surveyhub.db import Base
from surveyhub.db.models import Question, QuestionOption, QuestionType, Survey, User, UserRole
from surveyhub.db.session import configure_sqlite, get_db


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_user(db, *, email: str, role: str = "user", username: str | None = None, is_active: bool = True) -> User:
    user = User(
        email=email,
        username=username or email.split("@")[0],
        role=UserRole(role),
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user.id)}"}


def create_survey(db, owner: User, *, questions: list[dict] | None = None, **fields) -> Survey:
    """Build a published survey; each question dict may carry an `options` list of texts."""
    fields.setdefault("title", "Team survey")
    fields.setdefault("is_published", True)
    survey = Survey(user_id=owner.id, **fields)
    for pos, question in enumerate(questions or []):
        question = dict(question)
        options = question.pop("options", [])
        question.setdefault("question_type", QuestionType.text)
        survey.questions.append(Question(
            position=pos,
            options=[QuestionOption(text=text, position=i) for i, text in enumerate(options)],
            **question,
        ))
    db.add(survey)
    db.commit()
    return survey


@pytest.fixture
def admin(db):
    return create_user(db, email="admin@example.com", role="admin")


@pytest.fixture
def respondent(db):
    return create_user(db, email="alice@example.com", role="user")
