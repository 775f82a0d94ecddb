"""Client for the remote student profile API."""

import logging
import time
from typing import Any

import httpx

from portal.core.config import Settings, settings
from portal.core.exceptions import (
    InvalidResponseError,
    RemoteAPIError,
    RemoteNotFoundError,
    RemoteTransportError,
)

logger = logging.getLogger(__name__)


def create_http_client(
    config: Settings = settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the shared async HTTP client for the remote API."""
    timeout = httpx.Timeout(
        config.REMOTE_API_TIMEOUT_SECONDS,
        connect=config.REMOTE_API_CONNECT_TIMEOUT_SECONDS,
    )
    return httpx.AsyncClient(
        base_url=config.REMOTE_API_BASE_URL,
        timeout=timeout,
        headers={"Accept": "application/json"},
        transport=transport,
    )


def _normalize_errors(raw: Any) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        return {}
    errors: dict[str, list[str]] = {}
    for field, messages in raw.items():
        if isinstance(messages, (list, tuple)):
            errors[field] = [str(m) for m in messages]
        elif messages:
            errors[field] = [str(messages)]
    return errors


class ProfileApiClient:
    """Thin wrapper over the remote REST endpoints.

    Every method returns the decoded JSON body of a 2xx response. Any other
    outcome raises a ``RemoteAPIError``: ``RemoteNotFoundError`` for 404,
    ``RemoteTransportError`` when the server cannot be reached or answers
    with an unreadable body.
    """

    def __init__(self, client: httpx.AsyncClient, access_token: str | None = None):
        self.client = client
        self.access_token = access_token

    def _headers(self) -> dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        start_time = time.time()
        try:
            response = await self.client.request(
                method,
                path,
                json=json,
                data=data,
                files=files,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Remote request failed: {method} {path}: {e}")
            raise RemoteTransportError(str(e) or "Network error") from e

        duration_ms = round((time.time() - start_time) * 1000, 2)
        logger.debug(
            f"Remote request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        body: Any = None
        body_is_json = True
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body_is_json = False

        if response.is_success:
            if not body_is_json:
                logger.error(f"Invalid JSON response from {method} {path}")
                raise InvalidResponseError()
            return body if body is not None else {}

        message = body.get("message") if isinstance(body, dict) else None
        if response.status_code == 404:
            raise RemoteNotFoundError(message)

        errors = _normalize_errors(body.get("errors")) if isinstance(body, dict) else {}
        logger.info(f"Remote API rejected {method} {path} with {response.status_code}: {message}")
        raise RemoteAPIError(response.status_code, message, errors)

    # Banking

    async def get_banking_details(self, user_id: int | str) -> Any:
        return await self._request("GET", f"/students/bankingDetails/{user_id}")

    async def create_banking_details(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/banking-details", json=payload)

    async def update_banking_details(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/banking-details/update", json=payload)

    # Biographical

    async def get_biographical(self, user_id: int | str) -> Any:
        return await self._request("GET", f"/students/biographical/{user_id}")

    async def save_biographical(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/biographical", json=payload)

    # Student profile

    async def get_student(self, user_id: int | str) -> Any:
        return await self._request("GET", f"/students/student/{user_id}")

    async def edit_student(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/edit-student", json=payload)

    async def update_profile(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/student/profile/update", json=payload)

    # Documents

    async def get_documents(self, user_id: int | str) -> Any:
        return await self._request("GET", f"/students/documents/{user_id}")

    async def upload_supporting_document(
        self,
        user_id: int | str,
        document_type: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> Any:
        return await self._request(
            "POST",
            "/students/upload/supporting-documents",
            data={"user_id": str(user_id), "document_type": document_type},
            files={"file": (file_name, content, content_type)},
        )

    # Authentication

    async def login(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/login", json=payload)

    async def verify_mfa(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/verify-mfa", json=payload)

    async def verify_token(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/verify-token", json=payload)

    async def forgot_password(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/forgot-password", json=payload)

    async def reset_password(self, payload: dict[str, Any]) -> Any:
        return await self._request("POST", "/students/reset-pass", json=payload)
