"""Common schema utilities and base classes."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


Severity = Literal["success", "error"]


class Notification(BaseSchema):
    """A toast/alert raised while handling a screen action."""

    message: str
    severity: Severity


class ErrorDetail(BaseSchema):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] = {}


class ErrorResponse(BaseSchema):
    """Standard error response."""

    success: bool = False
    error: ErrorDetail


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str


class ScreenResponse(BaseSchema):
    """Base response of every portal screen action."""

    success: bool = True
    notifications: list[Notification] = []
