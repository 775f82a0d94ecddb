"""Toast/alert reporting for portal screens."""

import logging
from typing import Callable

from portal.schemas.common import Notification, Severity

logger = logging.getLogger(__name__)

Reporter = Callable[[str, Severity], None]


class NotificationCollector:
    """Reporter that keeps every toast raised during one request.

    Instances are callable with ``(message, severity)`` so they can be
    handed to controllers wherever a ``Reporter`` is expected.
    """

    def __init__(self):
        self.notifications: list[Notification] = []

    def __call__(self, message: str, severity: Severity) -> None:
        logger.debug(f"Toast [{severity}]: {message}")
        self.notifications.append(Notification(message=message, severity=severity))

    def drain(self) -> list[Notification]:
        """Return collected toasts and reset the collector."""
        notifications, self.notifications = self.notifications, []
        return notifications


def null_reporter(message: str, severity: Severity) -> None:
    """Reporter that discards every toast."""
    return None
