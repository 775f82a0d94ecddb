"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.database import get_db
from portal.core.security import create_session_token, new_session_id, verify_session_token
from portal.schemas.student import StudentRecord
from portal.services.notification import NotificationCollector
from portal.services.remote_api import ProfileApiClient
from portal.services.session_store import (
    DatabaseSessionStore,
    InMemorySessionStore,
    SessionStore,
)


def get_session_store(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> SessionStore:
    """Resolve the caller's session from the signed cookie, starting one if needed."""
    session_id = verify_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if not session_id:
        session_id = new_session_id()
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            create_session_token(session_id),
            max_age=settings.SESSION_TTL_HOURS * 3600,
            httponly=True,
            samesite="lax",
        )

    if settings.SESSION_BACKEND == "memory":
        return InMemorySessionStore(session_id)
    return DatabaseSessionStore(db, session_id)


def get_profile_api(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ProfileApiClient:
    """Remote API client carrying the session's access token."""
    return ProfileApiClient(request.app.state.http_client, access_token=store.access_token)


def get_reporter() -> NotificationCollector:
    """Per-request toast collector."""
    return NotificationCollector()


def get_current_student(
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> StudentRecord:
    """The signed-in student; a missing or corrupt session forces re-login."""
    return store.require_student()


# Type aliases for dependency injection
Store = Annotated[SessionStore, Depends(get_session_store)]
RemoteApi = Annotated[ProfileApiClient, Depends(get_profile_api)]
Notifications = Annotated[NotificationCollector, Depends(get_reporter)]
CurrentStudent = Annotated[StudentRecord, Depends(get_current_student)]
