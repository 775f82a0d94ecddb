"""Authentication screen schemas."""

from typing import Literal

from pydantic import Field

from portal.schemas.common import BaseSchema, ScreenResponse

NextStep = Literal["mfa", "dashboard", "login"]


class LoginRequest(BaseSchema):
    """Login form."""

    email: str = ""
    password: str = ""


class CodeRequest(BaseSchema):
    """MFA or account verification code form."""

    code: str = Field("", validation_alias="mfa_code", serialization_alias="mfa_code")


class ForgotPasswordRequest(BaseSchema):
    """Forgot password form."""

    email: str = ""


class ResetPasswordRequest(BaseSchema):
    """Reset password form."""

    email: str = ""
    otp: str = ""
    new_password: str = Field("", alias="newPassword")
    confirm_password: str = Field("", alias="confirmPassword")


class AuthResult(BaseSchema):
    """Outcome of one authentication step."""

    success: bool
    message: str | None = None
    errors: dict[str, str] = {}
    next_step: NextStep | None = None


class AuthResponse(ScreenResponse):
    """Authentication screen response."""

    message: str | None = None
    errors: dict[str, str] = {}
    next_step: NextStep | None = None
    redirect: str | None = None


class SessionInfo(BaseSchema):
    """What the client needs to know about the current session."""

    authenticated: bool
    user_id: str | None = None
    has_student: bool = False
