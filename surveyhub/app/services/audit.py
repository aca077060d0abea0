# app/services/audit.py
import logging
from math import ceil
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from surveyhub.db.models import AuditLog

logger = logging.getLogger(__name__)


def log_action(session: Session, *, user_id: int, action: str, entity_type: str, entity_id: int,
               details: dict | None = None, ip_address: str | None = None,
               user_agent: str | None = None) -> AuditLog | None:
    """Append an audit entry inside a SAVEPOINT.

    A failed write is logged and dropped; auditing never fails the operation
    being audited.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        with session.begin_nested():
            session.add(entry)
    except SQLAlchemyError as e:
        logger.error("Failed to write audit log %s %s/%s: %s", action, entity_type, entity_id, e)
        return None
    return entry


def entity_logs(session: Session, entity_type: str, entity_id: int) -> list[AuditLog]:
    return list(session.scalars(
        select(AuditLog)
        .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    ).all())


def all_logs(session: Session, page: int = 1, limit: int = 20) -> tuple[list[AuditLog], int, int]:
    """Returns (logs on the page, total count, total pages)."""
    total = session.scalar(select(func.count(AuditLog.id))) or 0
    logs = session.scalars(
        select(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(logs), total, ceil(total / limit) if total else 0
