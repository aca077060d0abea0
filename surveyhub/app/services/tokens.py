"""Bearer access tokens for SurveyHub users.

A token is `<b64(claims)>.<b64(hmac)>`, where the claims carry the user id
in `sub` and the expiry in `exp`. Logging in against an identity provider
happens upstream; here a resolved user id becomes a token and back.
"""
# app/services/tokens.py
import time, hmac, hashlib, base64, json
from typing import Optional
from surveyhub.app.core.config import settings

def _encode(part: bytes) -> str:
    return base64.urlsafe_b64encode(part).rstrip(b"=").decode()

def _decode(part: str) -> bytes:
    return base64.urlsafe_b64decode(part + "=" * (-len(part) % 4))

def _signature(claims: bytes) -> bytes:
    return hmac.new(settings.SECRET_KEY.encode(), claims, hashlib.sha256).digest()

def sign_token(claims: dict, ttl_sec: int) -> str:
    """Sign access-token claims.

    Args:
        claims: Token claims, usually just `sub` (the user id).
        ttl_sec: Seconds until the token expires; stored as `exp`.

    Returns:
        str: The bearer token sent in the Authorization header.
    """
    body = json.dumps(claims | {"exp": int(time.time()) + int(ttl_sec)}, separators=(",", ":")).encode()
    return f"{_encode(body)}.{_encode(_signature(body))}"

def verify_token(token: str) -> Optional[dict]:
    """Return the claims of a valid, unexpired access token, else None."""
    try:
        body_b64, sig_b64 = token.split(".", 1)
        body, sig = _decode(body_b64), _decode(sig_b64)
    except (ValueError, TypeError):
        return None
    if not hmac.compare_digest(sig, _signature(body)):
        return None

    try:
        claims = json.loads(body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(claims, dict) or claims.get("exp", 0) < int(time.time()):
        return None
    return claims

def issue_access_token(user_id: int, ttl_sec: int | None = None) -> str:
    """Issue a bearer token for a user id."""
    return sign_token({"sub": user_id}, ttl_sec if ttl_sec is not None else settings.ACCESS_TOKEN_TTL)
