"""GitHub login flow: code → access token → identity → linked local user.

각 단계는 이전 단계의 결과에 의존하므로 요청 안에서는 순차적으로 실행되고,
요청 간에는 공유 상태 없이 병렬로 처리됩니다.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from authgate.adapters.github import GitHubOAuthClient, GitHubOAuthError
from authgate.models.user import (
    AccountDraft,
    ExternalIdentity,
    ProviderType,
    UserDraft,
    UserProfile,
    UserRole,
)
from authgate.repositories.user_repo import RepositoryError, UserRepository
from authgate.server.errors import LinkageError, UpstreamAuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    profile: UserProfile
    access_token: str


def build_user_draft(identity: ExternalIdentity) -> UserDraft:
    return UserDraft(
        name=identity.display_name,
        email_address=identity.email,
        email_get_updates=False,
        avatar_url=identity.avatar_url,
        role=UserRole.USER,
        enabled=True,
    )


def build_account_draft(identity: ExternalIdentity, access_token: str) -> AccountDraft:
    return AccountDraft(
        provider=ProviderType.GITHUB,
        provider_account_id=identity.provider_user_id,
        provider_account_login=identity.provider_login,
        access_token=access_token,
    )


class GitHubLoginService:
    """Runs the callback half of the GitHub OAuth flow."""

    provider = ProviderType.GITHUB

    def __init__(self, oauth_client: GitHubOAuthClient, user_repo: UserRepository) -> None:
        self.oauth_client = oauth_client
        self.user_repo = user_repo

    def authorize_url(self, state: str) -> str:
        return self.oauth_client.authorize_url(state)

    async def login(self, code: str) -> LoginResult:
        """Authorization code로 로그인하고 로컬 사용자 프로필을 반환합니다.

        Raises:
            UpstreamAuthError: 토큰 교환 또는 사용자 조회 실패 (재시도하지 않음)
            LinkageError: 사용자/계정 저장 실패
        """
        try:
            access_token = await self.oauth_client.exchange_code_for_token(code)
            identity = await self.oauth_client.get_authenticated_user(access_token)
        except GitHubOAuthError as exc:
            raise UpstreamAuthError(cause=exc) from exc

        try:
            user_id = await self.user_repo.find_or_create_user_by_account(
                build_user_draft(identity),
                build_account_draft(identity, access_token),
            )
            profile = await self.user_repo.get_user_by_id(user_id)
        except RepositoryError as exc:
            raise LinkageError(cause=exc) from exc

        if profile is None:
            raise LinkageError(
                cause=RepositoryError(f"Linked user {user_id} not found")
            )

        logger.info(
            "GitHub user %s logged in as user %s", identity.provider_login, profile.id
        )
        return LoginResult(profile=profile, access_token=access_token)
