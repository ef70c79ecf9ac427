"""Dependency injection for FastAPI routes.

OAuth 관련 컴포넌트는 앱 생성 시 한 번만 구성되어 `app.state.auth`에 저장됩니다.
OAUTH_CLIENT_ID / OAUTH_CLIENT_SECRET이 없으면 컴포넌트를 만들지 않습니다.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from authgate.adapters.github import GitHubOAuthClient
from authgate.models.user import UserProfile
from authgate.repositories.user_repo import UserRepository, build_user_repository
from authgate.server.errors import SessionVerificationError
from authgate.server.security import (
    JWTVerificationError,
    SessionIssuer,
    SessionVerifier,
)
from authgate.server.settings import Settings
from authgate.services.github_login import GitHubLoginService

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Capabilities injected into request handling by the app factory."""

    enabled: bool
    user_repo: Optional[UserRepository] = None
    login_service: Optional[GitHubLoginService] = None
    session_issuer: Optional[SessionIssuer] = None
    session_verifier: Optional[SessionVerifier] = None


def build_auth_context(
    settings: Settings,
    user_repo: Optional[UserRepository] = None,
) -> AuthContext:
    if not settings.oauth_enabled:
        return AuthContext(enabled=False)

    repo = user_repo or build_user_repository(settings)
    oauth_client = GitHubOAuthClient(
        settings.OAUTH_CLIENT_ID,
        settings.OAUTH_CLIENT_SECRET,
        settings.github_callback_uri,
        scope=settings.OAUTH_SCOPE,
        timeout=settings.OAUTH_HTTP_TIMEOUT,
    )
    return AuthContext(
        enabled=True,
        user_repo=repo,
        login_service=GitHubLoginService(oauth_client, repo),
        session_issuer=SessionIssuer(settings),
        session_verifier=SessionVerifier(settings),
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_context(request: Request) -> AuthContext:
    return request.app.state.auth


async def authenticate(
    request: Request,
    context: AuthContext = Depends(get_auth_context),
) -> UserProfile:
    """세션 쿠키를 검증하고 현재 사용자 프로필을 반환합니다.

    검증에 성공하면 `request.state.user`(프로필)와 `request.state.session`을 설정합니다.

    Raises:
        SessionVerificationError: 401 - 쿠키 없음/형식 오류/서명 불일치/만료
    """
    verifier = context.session_verifier
    if verifier is None:
        raise SessionVerificationError(
            cause=JWTVerificationError("Session verification is not configured")
        )

    session = verifier.verify(request.cookies.get(verifier.cookie_name))
    request.state.user = session.profile
    request.state.session = session
    return session.profile
