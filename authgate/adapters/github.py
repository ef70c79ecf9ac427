"""GitHub adapter for OAuth authentication.

GitHub OAuth 2.0 authorization code 흐름을 처리합니다.
1. authorize URL 생성 (로그인 리다이렉트)
2. code → access token 교환
3. access token으로 인증된 사용자 정보 조회 (GET /user)

authorization code는 일회용이므로 어떤 호출도 재시도하지 않습니다.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from authgate.models.user import ExternalIdentity

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


class GitHubOAuthError(RuntimeError):
    """Raised when GitHub rejects the exchange or the user lookup fails."""


class GitHubOAuthClient:
    """GitHub OAuth 클라이언트.

    Args:
        client_id: GitHub OAuth App client ID
        client_secret: GitHub OAuth App client secret
        redirect_uri: 등록된 콜백 URI (정확히 일치해야 함)
        scope: 요청할 scope (기본값 user:email)
        timeout: 외부 호출 타임아웃 (초)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        scope: str = "user:email",
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.timeout = timeout

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": state,
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> str:
        """GitHub OAuth code를 access token으로 교환합니다.

        Args:
            code: GitHub OAuth authorization code

        Returns:
            Access token 문자열

        Raises:
            GitHubOAuthError: 네트워크 오류, 비정상 응답, 또는 GitHub가 code를 거부한 경우
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    GITHUB_TOKEN_URL,
                    headers={"Accept": "application/json"},
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "GitHub token endpoint responded with status %s",
                exc.response.status_code,
            )
            raise GitHubOAuthError(
                f"Token exchange failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Failed to exchange code for token: %s", exc)
            raise GitHubOAuthError("Token exchange request failed") from exc
        except ValueError as exc:
            raise GitHubOAuthError("Invalid JSON from token endpoint") from exc

        if not isinstance(data, dict):
            raise GitHubOAuthError("Invalid token response")

        # GitHub는 잘못된 code에도 200과 함께 error 필드를 반환함
        error = data.get("error")
        if error:
            logger.warning("GitHub rejected authorization code: %s", error)
            raise GitHubOAuthError(f"Token exchange rejected: {error}")

        access_token = data.get("access_token")
        if not access_token:
            raise GitHubOAuthError("No access token in token response")

        logger.info("Successfully exchanged code for access token")
        return access_token

    async def get_authenticated_user(self, access_token: str) -> ExternalIdentity:
        """GitHub access token으로 사용자 정보를 가져옵니다.

        GET /user 를 한 번만 호출합니다. 이메일이 비공개이면 email은 None입니다.

        Raises:
            GitHubOAuthError: 토큰 만료/무효, rate limit, 네트워크 오류
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    GITHUB_USER_URL,
                    headers={
                        "Accept": "application/vnd.github+json",
                        "Authorization": f"Bearer {access_token}",
                        "X-GitHub-Api-Version": "2022-11-28",
                    },
                )
                response.raise_for_status()
                user_data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "GitHub /user responded with status %s", exc.response.status_code
            )
            raise GitHubOAuthError(
                f"User lookup failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch user info: %s", exc)
            raise GitHubOAuthError("User lookup request failed") from exc
        except ValueError as exc:
            raise GitHubOAuthError("Invalid JSON from GitHub /user") from exc

        identity = to_external_identity(user_data)
        logger.info("Fetched GitHub user %s", identity.provider_login)
        return identity


def to_external_identity(user_data: Optional[Dict[str, Any]]) -> ExternalIdentity:
    """Map a GitHub `GET /user` payload to an ExternalIdentity."""
    if not isinstance(user_data, dict):
        raise GitHubOAuthError("Invalid GitHub user payload")

    user_id = user_data.get("id")
    login = user_data.get("login")
    if user_id is None or not login:
        raise GitHubOAuthError("GitHub user payload missing id or login")

    return ExternalIdentity(
        provider_user_id=str(user_id),
        provider_login=login,
        display_name=user_data.get("name") or login,
        email=user_data.get("email") or None,
        avatar_url=user_data.get("avatar_url") or "",
    )
