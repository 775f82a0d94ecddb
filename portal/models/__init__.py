"""Database models package."""

from portal.models.session import PortalSessionEntry

__all__ = [
    # Session
    "PortalSessionEntry",
]
