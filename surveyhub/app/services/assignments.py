"""Survey assignment bookkeeping.

Assignments are soft-deleted (`is_removed`) and reactivated instead of being
duplicated, so a `(survey_id, user_id)` pair always maps to one row.
"""
# app/services/assignments.py
import enum
import logging
from datetime import datetime, timezone
from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from surveyhub.db.models import SurveyAssignment, User, UserRole

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignOutcome(str, enum.Enum):
    created = "created"
    reactivated = "reactivated"
    already_active = "already_active"


def ensure_assignment(session: Session, survey_id: int, user_id: int,
                      assigned_by: int | None) -> tuple[SurveyAssignment, AssignOutcome]:
    """Create the assignment, or reactivate a removed one.

    Does not commit; the caller owns the transaction.
    """
    assignment = session.scalar(
        select(SurveyAssignment).where(
            SurveyAssignment.survey_id == survey_id,
            SurveyAssignment.user_id == user_id,
        )
    )
    if assignment is not None:
        if not assignment.is_removed:
            return assignment, AssignOutcome.already_active
        assignment.is_removed = False
        assignment.removed_at = None
        assignment.removed_by = None
        assignment.assigned_by = assigned_by
        assignment.assigned_at = utcnow()
        session.flush()
        return assignment, AssignOutcome.reactivated

    assignment = SurveyAssignment(survey_id=survey_id, user_id=user_id, assigned_by=assigned_by)
    session.add(assignment)
    session.flush()
    return assignment, AssignOutcome.created


def remove_assignment(session: Session, survey_id: int, user_id: int, removed_by: int) -> SurveyAssignment | None:
    assignment = session.scalar(
        select(SurveyAssignment).where(
            SurveyAssignment.survey_id == survey_id,
            SurveyAssignment.user_id == user_id,
            SurveyAssignment.is_removed.is_(False),
        )
    )
    if assignment is None:
        return None
    assignment.is_removed = True
    assignment.removed_at = utcnow()
    assignment.removed_by = removed_by
    session.flush()
    return assignment


def auto_assign_users(session: Session, survey_id: int, assigned_by: int | None) -> tuple[int, int, list[dict]]:
    """Assign every active user with role `user` to the survey.

    Each user is handled in its own SAVEPOINT so one failure does not undo
    the others.

    Returns:
        tuple: (assignments created or reactivated, users considered, per-user errors).
    """
    users = session.scalars(
        select(User).where(User.role == UserRole.user, User.is_active.is_(True))
    ).all()

    changed = 0
    errors: list[dict] = []
    for user in users:
        try:
            with session.begin_nested():
                _, outcome = ensure_assignment(session, survey_id, user.id, assigned_by)
        except SQLAlchemyError as e:
            logger.error("Failed to assign survey %s to user %s: %s", survey_id, user.id, e)
            errors.append({"user_id": user.id, "error": str(e)})
            continue
        if outcome is not AssignOutcome.already_active:
            changed += 1

    return changed, len(users), errors


def user_for_email(session: Session, email: str) -> User:
    """Existing user with the email, or a new placeholder `user` account for it."""
    email = email.strip()
    user = session.scalar(select(User).where(User.email == email))
    if user is not None:
        return user

    base = email.split("@")[0] or "user"
    username, suffix = base, 1
    while session.scalar(select(User.id).where(User.username == username)) is not None:
        suffix += 1
        username = f"{base}{suffix}"

    # profile fields are filled in on first sign-in
    user = User(email=email, username=username, role=UserRole.user, is_active=True)
    session.add(user)
    session.flush()
    logger.info("Created placeholder user %s for %s", user.id, email)
    return user


def search_users(session: Session, query: str | None, limit: int = 20) -> list[User]:
    stmt = select(User).where(User.role == UserRole.user)
    if query and query.strip():
        pattern = f"%{query.strip()}%"
        stmt = stmt.where(or_(
            User.username.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        ))
    return list(session.scalars(stmt.order_by(User.id).limit(limit)).all())


def active_assignees(session: Session, survey_id: int) -> list[SurveyAssignment]:
    return list(session.scalars(
        select(SurveyAssignment)
        .where(SurveyAssignment.survey_id == survey_id, SurveyAssignment.is_removed.is_(False))
        .order_by(SurveyAssignment.assigned_at, SurveyAssignment.id)
    ).all())
