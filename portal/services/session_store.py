"""Session store: the single source of truth for the signed-in student.

Every screen reads the student and auth tokens through a ``SessionStore``
and writes reconciled data back through it. Writers do not lock; the last
write wins, so callers re-read before every merge instead of keeping a
long-lived copy.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import SessionExpiredError
from portal.models.session import PortalSessionEntry
from portal.schemas.student import StudentRecord

logger = logging.getLogger(__name__)

STUDENT_KEY = "student"
ACCESS_TOKEN_KEY = "access_token"
USER_ID_KEY = "user_id"
USER_TYPE_KEY = "user_type"
# Last write time of an in-memory session, used for idle eviction
TOUCHED_KEY = "_touched_at"


class SessionStore(ABC):
    """Key/value session storage with typed accessors."""

    def __init__(self, session_id: str):
        self.session_id = session_id

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the raw value stored under ``key``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every key of this session."""

    # Auth state

    @property
    def access_token(self) -> str | None:
        return self.get(ACCESS_TOKEN_KEY)

    @property
    def user_id(self) -> str | None:
        return self.get(USER_ID_KEY)

    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def write_auth(
        self,
        user_id: int | str,
        access_token: str | None,
        user_type: str | None = None,
    ) -> None:
        """Persist the tokens returned by a successful login."""
        self.set(USER_ID_KEY, str(user_id))
        if access_token:
            self.set(ACCESS_TOKEN_KEY, access_token)
        if user_type:
            self.set(USER_TYPE_KEY, user_type)

    def require_user_id(self) -> str:
        """Return the signed-in user id or force re-authentication."""
        user_id = self.user_id
        if not user_id:
            self.clear()
            raise SessionExpiredError()
        return user_id

    # Student record

    def read_student(self) -> StudentRecord | None:
        """Return the stored student, or None when nothing is stored yet.

        A corrupt entry clears the session and forces re-authentication.
        """
        raw = self.get(STUDENT_KEY)
        if raw is None:
            return None
        try:
            return StudentRecord.model_validate(json.loads(raw))
        except (ValueError, PydanticValidationError):
            logger.warning(f"Corrupt student entry in session {self.session_id}; clearing")
            self.clear()
            raise SessionExpiredError()

    def require_student(self) -> StudentRecord:
        """Return the stored student or force re-authentication."""
        student = self.read_student()
        if student is None or student.record_id is None:
            self.clear()
            raise SessionExpiredError()
        return student

    def write_student(self, student: StudentRecord) -> None:
        self.set(STUDENT_KEY, student.model_dump_json())

    def merge_student(self, changes: dict) -> StudentRecord | None:
        """Apply server-returned fields to the stored student.

        Re-reads the stored record first so concurrent writers are not
        overwritten with a stale copy. Returns None when no student is stored.
        """
        current = self.read_student()
        if current is None:
            return None
        updated = current.merged(changes)
        self.write_student(updated)
        return updated


class InMemorySessionStore(SessionStore):
    """Process-local session store, shared across requests of one process.

    Intended for development and single-process deployments. Sessions idle
    for longer than the TTL are evicted whenever a new session opens, so the
    shared dict holds live sessions only.
    """

    _storage: dict[str, dict[str, str]] = {}

    def __init__(
        self,
        session_id: str,
        storage: dict[str, dict[str, str]] | None = None,
        ttl_hours: int | None = None,
    ):
        super().__init__(session_id)
        self.storage = storage if storage is not None else self._storage
        self.ttl_hours = ttl_hours if ttl_hours is not None else settings.SESSION_TTL_HOURS

    def _bucket(self) -> dict[str, str]:
        bucket = self.storage.get(self.session_id)
        if bucket is None:
            purge_idle_sessions(self.storage, self.ttl_hours)
            bucket = self.storage[self.session_id] = {}
        bucket[TOUCHED_KEY] = datetime.now(timezone.utc).isoformat()
        return bucket

    def get(self, key: str) -> str | None:
        return self.storage.get(self.session_id, {}).get(key)

    def set(self, key: str, value: str) -> None:
        self._bucket()[key] = value

    def delete(self, key: str) -> None:
        self.storage.get(self.session_id, {}).pop(key, None)

    def clear(self) -> None:
        self.storage.pop(self.session_id, None)


class DatabaseSessionStore(SessionStore):
    """Session store persisted in the ``portal_session_entries`` table."""

    def __init__(self, db: Session, session_id: str):
        super().__init__(session_id)
        self.db = db

    def _entry(self, key: str) -> PortalSessionEntry | None:
        result = self.db.execute(
            select(PortalSessionEntry).where(
                PortalSessionEntry.session_id == self.session_id,
                PortalSessionEntry.key == key,
            )
        )
        return result.scalar_one_or_none()

    def get(self, key: str) -> str | None:
        entry = self._entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        entry = self._entry(key)
        if entry:
            entry.value = value
            entry.updated_at = datetime.now(timezone.utc)
        else:
            self.db.add(
                PortalSessionEntry(session_id=self.session_id, key=key, value=value)
            )
        self.db.flush()

    def delete(self, key: str) -> None:
        self.db.execute(
            delete(PortalSessionEntry).where(
                PortalSessionEntry.session_id == self.session_id,
                PortalSessionEntry.key == key,
            )
        )
        self.db.flush()

    def clear(self) -> None:
        # Committed at once: a clear must survive the error that usually follows it.
        self.db.execute(
            delete(PortalSessionEntry).where(
                PortalSessionEntry.session_id == self.session_id,
            )
        )
        self.db.commit()


def purge_expired_sessions(db: Session, ttl_hours: int) -> int:
    """Delete session entries not touched within ``ttl_hours``."""
    cutoff = datetime.now(timezone.utc) - timedelta(hours=ttl_hours)
    result = db.execute(
        delete(PortalSessionEntry)
        .where(PortalSessionEntry.updated_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    db.flush()
    return result.rowcount or 0


def _touched_at(bucket: dict[str, str]) -> datetime:
    try:
        return datetime.fromisoformat(bucket[TOUCHED_KEY])
    except (KeyError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)


def purge_idle_sessions(
    storage: dict[str, dict[str, str]],
    ttl_hours: int,
    now: datetime | None = None,
) -> int:
    """Drop in-memory sessions not written within ``ttl_hours``."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=ttl_hours)
    idle = [sid for sid, bucket in storage.items() if _touched_at(bucket) < cutoff]
    for sid in idle:
        del storage[sid]
    if idle:
        logger.info(f"Evicted {len(idle)} idle in-memory session(s)")
    return len(idle)
