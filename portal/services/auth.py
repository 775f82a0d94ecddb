"""Authentication flow against the remote profile API."""

import logging
from typing import Any

from portal.core.exceptions import RemoteAPIError, RemoteTransportError
from portal.schemas.auth import AuthResult
from portal.schemas.student import StudentRecord
from portal.services.normalizers import AUTH_FORMS, unwrap_record
from portal.services.remote_api import ProfileApiClient
from portal.services.session_store import SessionStore
from portal.services.validators import (
    validate_code,
    validate_forgot_password,
    validate_login,
    validate_reset_password,
)

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Something went wrong."


def _failure(e: RemoteAPIError) -> AuthResult:
    if isinstance(e, RemoteTransportError):
        return AuthResult(success=False, message=FALLBACK_MESSAGE)
    errors = AUTH_FORMS.server_errors_to_form(e.errors, keep_unknown=True)
    return AuthResult(success=False, message=e.message or FALLBACK_MESSAGE, errors=errors)


class AuthService:
    """Login, MFA, verification and password reset steps.

    Login only stores the tokens; the full student record is written once
    MFA passes and the profile fetch succeeds.
    """

    def __init__(self, api: ProfileApiClient, store: SessionStore):
        self.api = api
        self.store = store

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate and persist the access token and user id."""
        errors = validate_login({"email": email, "password": password})
        if errors:
            return AuthResult(success=False, errors=errors)

        payload = {
            "user_type": "student",
            "email": email.strip(),
            "id_number": None,
            "password": password,
        }
        try:
            data = await self.api.login(payload)
        except RemoteAPIError as e:
            logger.info(f"Login rejected for {email.strip()}: {e}")
            return _failure(e)

        user_id = data.get("user_id") if isinstance(data, dict) else None
        if user_id is None:
            logger.error("Login response carried no user_id")
            return AuthResult(success=False, message="Unexpected response from server.")

        self.store.clear()
        self.store.write_auth(
            user_id=user_id,
            access_token=data.get("access_token"),
            user_type=data.get("user_type"),
        )
        self.api.access_token = data.get("access_token")
        logger.info(f"Student {user_id} logged in; awaiting MFA")
        return AuthResult(
            success=True,
            message=data.get("message") or "Login successful!",
            next_step="mfa",
        )

    async def verify_mfa(self, code: str) -> AuthResult:
        """Verify the MFA code, then load and persist the student profile."""
        errors = validate_code({"code": code}, label="MFA code")
        if errors:
            return AuthResult(success=False, message=errors["code"], errors=errors)

        user_id = self.store.require_user_id()
        try:
            data = await self.api.verify_mfa({"mfa_code": code.strip()})
        except RemoteAPIError as e:
            logger.info(f"MFA rejected for user {user_id}: {e}")
            return _failure(e)

        if isinstance(data, dict) and data.get("access_token"):
            self.store.write_auth(user_id=user_id, access_token=data["access_token"])
            self.api.access_token = data["access_token"]

        try:
            profile = await self.api.get_student(user_id)
        except RemoteAPIError as e:
            logger.warning(f"MFA passed but profile fetch failed for user {user_id}: {e}")
            return AuthResult(
                success=False,
                message="Verified, but your profile could not be loaded. Please try again.",
            )

        student = self._student_from(profile, user_id)
        self.store.write_student(student)
        message = data.get("message") if isinstance(data, dict) else None
        return AuthResult(
            success=True,
            message=message or "MFA verified!",
            next_step="dashboard",
        )

    async def verify_token(self, code: str) -> AuthResult:
        """Verify an account with the code emailed to the student."""
        errors = validate_code({"code": code})
        if errors:
            return AuthResult(success=False, message=errors["code"], errors=errors)

        student = self.store.read_student()
        email = student.email if student else None
        if not email:
            return AuthResult(success=False, message="Cannot verify: No email found in session.")

        try:
            data = await self.api.verify_token({"email": email, "token": code.strip()})
        except RemoteAPIError as e:
            return _failure(e)
        message = data.get("message") if isinstance(data, dict) else None
        return AuthResult(success=True, message=message or "Account verified!")

    async def forgot_password(self, email: str) -> AuthResult:
        errors = validate_forgot_password({"email": email})
        if errors:
            return AuthResult(success=False, errors=errors)

        try:
            data = await self.api.forgot_password({"email": email.strip()})
        except RemoteAPIError as e:
            return _failure(e)
        message = data.get("message") if isinstance(data, dict) else None
        return AuthResult(success=True, message=message or "Password reset email sent!")

    async def reset_password(
        self,
        email: str,
        otp: str,
        new_password: str,
        confirm_password: str,
    ) -> AuthResult:
        form = {
            "email": email,
            "otp": otp,
            "newPassword": new_password,
            "confirmPassword": confirm_password,
        }
        errors = validate_reset_password(form)
        if errors:
            return AuthResult(success=False, errors=errors)

        payload = {
            "email": email.strip(),
            "otp": otp.strip(),
            "new_password": new_password,
            "confirm_password": confirm_password,
        }
        try:
            data = await self.api.reset_password(payload)
        except RemoteAPIError as e:
            return _failure(e)
        message = data.get("message") if isinstance(data, dict) else None
        return AuthResult(
            success=True,
            message=message or "Password reset successfully!",
            next_step="login",
        )

    def logout(self) -> None:
        self.store.clear()

    @staticmethod
    def _student_from(profile: Any, user_id: str) -> StudentRecord:
        record = dict(unwrap_record(profile))
        if record.get("user_id") is None and record.get("id") is None:
            record["user_id"] = user_id
        return StudentRecord.model_validate(record)
