"""User repositories implementing provider-account linking.

계정 연결 규칙:
- (provider, provider_account_id)로 연결 계정을 조회 (이메일은 연결 키가 아님)
- 있으면: provider_account_login, access_token만 갱신하고 기존 user id 반환
- 없으면: User + LinkedAccount를 하나의 단위로 생성
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from authgate.adapters.user_backend import UserBackendClient, UserBackendError
from authgate.models.user import (
    AccountDraft,
    LinkedAccount,
    ProviderType,
    User,
    UserDraft,
    UserProfile,
)

logger = logging.getLogger(__name__)


class RepositoryError(RuntimeError):
    """Raised when the persistence layer fails."""


class UserRepository(ABC):
    """Persistence contract required by the login flow."""

    @abstractmethod
    async def find_or_create_user_by_account(
        self, user: UserDraft, account: AccountDraft
    ) -> int:
        """Return the id of the user linked to `account`, creating both if needed."""

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> Optional[UserProfile]:
        ...


class InMemoryUserRepository(UserRepository):
    """Process-local user store.

    조회와 생성을 하나의 lock 안에서 수행하므로 동시 첫 로그인에도
    연결 계정이 중복 생성되지 않습니다. 계정 insert가 실패하면 방금 만든
    사용자 레코드를 되돌립니다.
    """

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._accounts: Dict[Tuple[ProviderType, str], LinkedAccount] = {}
        self._next_user_id = 1
        self._next_account_id = 1
        self._lock = asyncio.Lock()

    async def find_or_create_user_by_account(
        self, user: UserDraft, account: AccountDraft
    ) -> int:
        key = (account.provider, account.provider_account_id)
        async with self._lock:
            existing = self._accounts.get(key)
            if existing is not None:
                # 로그인마다 토큰이 바뀌므로 연결 메타데이터만 갱신
                self._accounts[key] = existing.model_copy(
                    update={
                        "provider_account_login": account.provider_account_login,
                        "access_token": account.access_token,
                    }
                )
                return existing.user_id

            new_user = self._insert_user(user)
            try:
                self._insert_account(new_user.id, account)
            except Exception as exc:
                self._users.pop(new_user.id, None)
                logger.error(
                    "Rolled back user %s after linked account insert failed: %s",
                    new_user.id,
                    exc,
                )
                raise RepositoryError("Failed to create linked account") from exc

            logger.info(
                "Created user %s for %s account %s",
                new_user.id,
                account.provider.value,
                account.provider_account_id,
            )
            return new_user.id

    async def get_user_by_id(self, user_id: int) -> Optional[UserProfile]:
        user = self._users.get(user_id)
        if user is None:
            return None
        account = next(
            (
                acc
                for acc in self._accounts.values()
                if acc.user_id == user_id and acc.provider == ProviderType.GITHUB
            ),
            None,
        )
        return UserProfile.from_records(user, account)

    def get_account(
        self, provider: ProviderType, provider_account_id: str
    ) -> Optional[LinkedAccount]:
        """Inspection helper (not part of UserRepository): stored linked account."""
        return self._accounts.get((provider, provider_account_id))

    def get_user(self, user_id: int) -> Optional[User]:
        """Inspection helper: raw user record without the profile projection."""
        return self._users.get(user_id)

    @property
    def user_count(self) -> int:
        """Inspection helper: number of stored users."""
        return len(self._users)

    @property
    def account_count(self) -> int:
        """Inspection helper: number of stored linked accounts."""
        return len(self._accounts)

    def _insert_user(self, draft: UserDraft) -> User:
        user = User(id=self._next_user_id, **draft.model_dump())
        self._users[user.id] = user
        self._next_user_id += 1
        return user

    def _insert_account(self, user_id: int, draft: AccountDraft) -> LinkedAccount:
        key = (draft.provider, draft.provider_account_id)
        if key in self._accounts:
            raise RepositoryError(f"Duplicate linked account {key}")
        account = LinkedAccount(
            id=self._next_account_id, user_id=user_id, **draft.model_dump()
        )
        self._accounts[key] = account
        self._next_account_id += 1
        return account


def _extract_user_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    user_payload = data.get("user")
    if isinstance(user_payload, dict):
        return user_payload
    return data


class BackendUserRepository(UserRepository):
    """Proxy user repository interacting with the user backend."""

    def __init__(self, client: UserBackendClient) -> None:
        self.client = client

    async def find_or_create_user_by_account(
        self, user: UserDraft, account: AccountDraft
    ) -> int:
        try:
            payload = await self.client.find_or_create_user_by_account(
                user.model_dump(mode="json"),
                account.model_dump(mode="json"),
            )
        except UserBackendError as exc:
            raise RepositoryError("User backend find-or-create failed") from exc

        if not isinstance(payload, dict):
            raise RepositoryError("User backend response is not an object")
        user_id = payload.get("userId", payload.get("id"))
        if user_id is None:
            raise RepositoryError("User backend response missing user id")
        try:
            return int(user_id)
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"Invalid user id from user backend: {user_id!r}") from exc

    async def get_user_by_id(self, user_id: int) -> Optional[UserProfile]:
        try:
            payload = await self.client.get_user_by_id(user_id)
        except UserBackendError as exc:
            if exc.status_code == 404:
                logger.info("User %s not found in user backend", user_id)
                return None
            raise RepositoryError(f"Failed to fetch user {user_id}") from exc

        if not isinstance(payload, dict):
            raise RepositoryError(f"Invalid user payload for user {user_id}")
        try:
            return UserProfile.from_backend(_extract_user_payload(payload))
        except ValueError as exc:
            raise RepositoryError(f"Invalid user payload for user {user_id}") from exc


def build_user_repository(settings) -> UserRepository:
    """USER_BACKEND_BASE_URL이 설정되어 있으면 백엔드, 아니면 in-memory 저장소."""
    if settings.USER_BACKEND_BASE_URL:
        client = UserBackendClient(
            settings.USER_BACKEND_BASE_URL, timeout=settings.USER_BACKEND_TIMEOUT
        )
        return BackendUserRepository(client)
    logger.warning("USER_BACKEND_BASE_URL not set; using in-memory user store")
    return InMemoryUserRepository()
