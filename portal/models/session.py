"""Server-side portal session storage model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portal.core.database import Base
from portal.models.base import TimestampMixin


class PortalSessionEntry(Base, TimestampMixin):
    """One key/value pair of a browser session (student, access_token, user_id, ...)."""

    __tablename__ = "portal_session_entries"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<PortalSessionEntry(session_id={self.session_id}, key={self.key})>"
