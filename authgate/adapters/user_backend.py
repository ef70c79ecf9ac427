"""Async client helpers for communicating with the user backend service."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class UserBackendError(RuntimeError):
    """Raised when the user backend returns an unexpected response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UserBackendClient:
    """사용자/연결 계정 저장을 담당하는 외부 백엔드 클라이언트.

    find-or-create는 백엔드의 단일 엔드포인트로 위임하여
    사용자 + 계정 생성이 백엔드 트랜잭션 하나로 처리되도록 합니다.
    """

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        if not base_url:
            raise UserBackendError("USER_BACKEND_BASE_URL is not configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = self._build_url(path)
        headers = {"Accept": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    json=json_body,
                    headers=headers,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body_preview = exc.response.text[:500]
            logger.error(
                "User backend responded with status %s for %s %s: %s",
                exc.response.status_code,
                method,
                url,
                body_preview,
            )
            raise UserBackendError(
                f"User backend request failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("User backend request failed for %s %s: %s", method, url, exc)
            raise UserBackendError("User backend request failed") from exc

        if not response.content:
            return {}

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            preview = response.text[:200]
            logger.error("Failed to decode user backend JSON response from %s: %s", url, preview)
            raise UserBackendError("Invalid JSON response from user backend") from exc

    async def find_or_create_user_by_account(
        self,
        user: Dict[str, Any],
        account: Dict[str, Any],
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/api/v1/users/find-or-create-by-account",
            json_body={"user": user, "account": account},
        )

    async def get_user_by_id(self, user_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/api/v1/users/{user_id}")
