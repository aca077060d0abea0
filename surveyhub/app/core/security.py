# app/core/security.py
from dataclasses import dataclass
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from surveyhub.app.services.tokens import verify_token
from surveyhub.db.session import get_db
from surveyhub.db.models import User


@dataclass(frozen=True)
class Caller:
    id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _resolve_caller(db: Session, token: str | None) -> Caller | None:
    if not token:
        return None
    payload = verify_token(token)
    if not payload:
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    user = db.get(User, user_id)
    if not user or not user.is_active:
        return None
    return Caller(id=user.id, email=user.email, role=user.role.value)


def optional_caller(request: Request, db: Session = Depends(get_db)) -> Caller | None:
    """Missing or invalid credentials fall back to an anonymous caller."""
    return _resolve_caller(db, _bearer_token(request))


def require_caller(request: Request, db: Session = Depends(get_db)) -> Caller:
    caller = _resolve_caller(db, _bearer_token(request))
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


def require_role(*roles: str):
    def dependency(caller: Caller = Depends(require_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: insufficient role")
        return caller
    return dependency


def client_meta(request: Request) -> tuple[str | None, str | None]:
    """Client ip and user agent of the request, if known."""
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")
