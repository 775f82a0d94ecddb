"""Signed session cookie helpers."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt

from portal.core.config import settings


def new_session_id() -> str:
    """Generate a fresh opaque session identifier."""
    return uuid4().hex


def create_session_token(
    session_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT carrying the portal session id."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            hours=settings.SESSION_TTL_HOURS
        )

    to_encode: dict[str, Any] = {
        "sid": session_id,
        "exp": expire,
        "type": "portal_session",
    }

    return jwt.encode(
        to_encode,
        settings.SESSION_SECRET_KEY,
        algorithm=settings.SESSION_TOKEN_ALGORITHM,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_TOKEN_ALGORITHM],
        )
        return payload
    except JWTError:
        return None


def verify_session_token(token: str | None) -> str | None:
    """Return the session id carried by a valid session cookie."""
    if not token:
        return None
    payload = decode_token(token)
    if payload and payload.get("type") == "portal_session":
        return payload.get("sid")
    return None
