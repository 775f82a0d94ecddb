"""Exception types and the error envelope returned to clients.

``AppException`` subclasses become HTTP responses of the form
``{"success": false, "error": {"code", "message", "details"}}``. The
``Remote*`` errors describe failures of the remote profile API and are
handled by the services; they never reach the client directly.
"""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(status_code=status_code, detail=self.body())

    def body(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": {"code": self.code, "message": self.message, "details": self.details},
        }


class SessionExpiredError(AppException):
    """Session is missing or corrupt; the client must authenticate again."""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            "SESSION_EXPIRED",
            message,
            {"redirect": "/login"},
        )


class ValidationError(AppException):
    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", message, details)


class ReadOnlyFieldError(ValidationError):
    """Attempt to edit a server-owned field."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' is read-only", {"field": field})


class UploadError(AppException):
    def __init__(self, message: str = "Upload failed", details: dict[str, Any] | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, "UPLOAD_FAILED", message, details)


class NotFoundError(AppException):
    def __init__(self, resource: str = "Resource", identifier: str | None = None):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            f"{resource} not found",
            {"identifier": identifier} if identifier else None,
        )


class RemoteAPIError(Exception):
    """The remote profile API answered with a non-success status.

    ``errors`` maps API field names to their messages when the server
    reported field-level validation failures.
    """

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ):
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}
        super().__init__(message or f"Remote API returned {status_code}")


class RemoteNotFoundError(RemoteAPIError):
    """The remote record does not exist yet."""

    def __init__(self, message: str | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class RemoteTransportError(RemoteAPIError):
    """The remote API could not be reached or sent an unreadable body."""

    def __init__(self, message: str = "Network error"):
        super().__init__(0, message)


class InvalidResponseError(RemoteTransportError):
    """The remote API answered 2xx with a body that is not JSON."""

    def __init__(self, message: str = "Invalid server response"):
        super().__init__(message)
