"""Authentication screen endpoints."""

from fastapi import APIRouter

from portal.core.dependencies import Notifications, RemoteApi, Store
from portal.schemas.auth import (
    AuthResponse,
    AuthResult,
    CodeRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SessionInfo,
)
from portal.schemas.common import MessageResponse
from portal.services.auth import AuthService

router = APIRouter()

NEXT_STEP_PATHS = {
    "mfa": "/pages/mfa",
    "dashboard": "/dashboard",
    "login": "/login",
}


def _response(result: AuthResult, notifications: Notifications) -> AuthResponse:
    if result.message:
        notifications(result.message, "success" if result.success else "error")
    return AuthResponse(
        success=result.success,
        message=result.message,
        errors=result.errors,
        next_step=result.next_step,
        redirect=NEXT_STEP_PATHS.get(result.next_step) if result.next_step else None,
        notifications=notifications.drain(),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Log in with email and password.

    Stores the access token and user id; the student record itself is only
    stored after MFA.
    """
    service = AuthService(api, store)
    result = await service.login(request.email, request.password)
    return _response(result, notifications)


@router.post("/verify-mfa", response_model=AuthResponse)
async def verify_mfa(
    request: CodeRequest,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Verify the MFA code sent after login and load the student profile.
    """
    service = AuthService(api, store)
    result = await service.verify_mfa(request.code)
    return _response(result, notifications)


@router.post("/verify-token", response_model=AuthResponse)
async def verify_token(
    request: CodeRequest,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Verify the account with the emailed verification code.
    """
    service = AuthService(api, store)
    result = await service.verify_token(request.code)
    return _response(result, notifications)


@router.post("/forgot-password", response_model=AuthResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Request a password reset OTP by email.
    """
    service = AuthService(api, store)
    result = await service.forgot_password(request.email)
    return _response(result, notifications)


@router.post("/reset-password", response_model=AuthResponse)
async def reset_password(
    request: ResetPasswordRequest,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Reset the password with the emailed OTP.
    """
    service = AuthService(api, store)
    result = await service.reset_password(
        request.email,
        request.otp,
        request.new_password,
        request.confirm_password,
    )
    return _response(result, notifications)


@router.post("/logout", response_model=MessageResponse)
async def logout(api: RemoteApi, store: Store):
    """
    Clear the current session.
    """
    AuthService(api, store).logout()
    return MessageResponse(message="Logged out successfully")


@router.get("/session", response_model=SessionInfo)
async def session_info(store: Store):
    """
    Report whether the caller is signed in.
    """
    student = store.read_student()
    return SessionInfo(
        authenticated=store.is_authenticated(),
        user_id=store.user_id,
        has_student=student is not None,
    )
