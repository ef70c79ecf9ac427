"""Tests for account linking in the user repositories.

이 모듈은 find-or-create 계정 연결 규칙을 테스트합니다:
1. 같은 (provider, provider_account_id)는 항상 같은 user id
2. 첫 로그인 시 User 1개 + LinkedAccount 1개 생성, 기본값 확인
3. 이메일은 연결 키가 아님
4. 계정 생성 실패 시 사용자 롤백
5. 백엔드 저장소의 에러 변환
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from authgate.adapters.user_backend import UserBackendError
from authgate.models.user import AccountDraft, ProviderType, UserDraft, UserRole
from authgate.repositories.user_repo import (
    BackendUserRepository,
    InMemoryUserRepository,
    RepositoryError,
    build_user_repository,
)
from helpers import make_settings


def user_draft(name="Alice", email="a@x.com") -> UserDraft:
    return UserDraft(name=name, email_address=email, avatar_url="http://x/a.png")


def account_draft(account_id="555", login="alice", token="tok1") -> AccountDraft:
    return AccountDraft(
        provider=ProviderType.GITHUB,
        provider_account_id=account_id,
        provider_account_login=login,
        access_token=token,
    )


@pytest.mark.asyncio
async def test_first_login_creates_user_and_account():
    """처음 보는 계정이면 User + LinkedAccount가 하나씩 생성되어야 함."""
    repo = InMemoryUserRepository()

    user_id = await repo.find_or_create_user_by_account(user_draft(), account_draft())

    assert repo.user_count == 1
    assert repo.account_count == 1
    user = repo.get_user(user_id)
    assert user.role == UserRole.USER
    assert user.enabled is True
    assert user.email_get_updates is False
    account = repo.get_account(ProviderType.GITHUB, "555")
    assert account.user_id == user_id
    assert account.access_token == "tok1"


@pytest.mark.asyncio
async def test_second_login_returns_same_user_and_refreshes_account():
    """같은 계정으로 다시 로그인하면 같은 user id, 연결 메타데이터만 갱신."""
    repo = InMemoryUserRepository()
    first = await repo.find_or_create_user_by_account(user_draft(), account_draft())
    created_at = repo.get_user(first).created_at

    second = await repo.find_or_create_user_by_account(
        user_draft(name="Someone Else", email="other@x.com"),
        account_draft(login="alice2", token="tok2"),
    )

    assert second == first
    assert repo.user_count == 1
    assert repo.account_count == 1
    user = repo.get_user(first)
    assert user.name == "Alice"
    assert user.email_address == "a@x.com"
    assert user.created_at == created_at
    account = repo.get_account(ProviderType.GITHUB, "555")
    assert account.provider_account_login == "alice2"
    assert account.access_token == "tok2"


@pytest.mark.asyncio
async def test_same_email_different_accounts_are_not_merged():
    repo = InMemoryUserRepository()

    first = await repo.find_or_create_user_by_account(user_draft(), account_draft("555"))
    second = await repo.find_or_create_user_by_account(
        user_draft(), account_draft("556", login="alice-alt")
    )

    assert first != second
    assert repo.user_count == 2


@pytest.mark.asyncio
async def test_concurrent_first_logins_create_one_user():
    repo = InMemoryUserRepository()

    ids = await asyncio.gather(
        *[
            repo.find_or_create_user_by_account(user_draft(), account_draft())
            for _ in range(5)
        ]
    )

    assert len(set(ids)) == 1
    assert repo.user_count == 1
    assert repo.account_count == 1


@pytest.mark.asyncio
async def test_account_insert_failure_rolls_back_user():
    """계정 insert가 실패하면 사용자 레코드도 남지 않아야 함."""

    class FailingRepo(InMemoryUserRepository):
        def _insert_account(self, user_id, draft):
            raise RuntimeError("disk full")

    repo = FailingRepo()

    with pytest.raises(RepositoryError):
        await repo.find_or_create_user_by_account(user_draft(), account_draft())

    assert repo.user_count == 0
    assert repo.account_count == 0


@pytest.mark.asyncio
async def test_get_user_by_id_builds_profile():
    repo = InMemoryUserRepository()
    user_id = await repo.find_or_create_user_by_account(user_draft(), account_draft())

    profile = await repo.get_user_by_id(user_id)

    assert profile.id == user_id
    assert profile.name == "Alice"
    assert profile.github_id == 555
    assert profile.github_login == "alice"
    assert await repo.get_user_by_id(999) is None


@pytest.mark.asyncio
async def test_backend_repository_find_or_create():
    client = MagicMock()
    client.find_or_create_user_by_account = AsyncMock(return_value={"userId": 42})
    repo = BackendUserRepository(client)

    user_id = await repo.find_or_create_user_by_account(user_draft(), account_draft())

    assert user_id == 42
    user_payload, account_payload = client.find_or_create_user_by_account.call_args.args
    assert user_payload["role"] == "user"
    assert user_payload["email_get_updates"] is False
    assert account_payload["provider"] == "github"
    assert account_payload["provider_account_id"] == "555"


@pytest.mark.asyncio
async def test_backend_repository_errors_become_repository_errors():
    client = MagicMock()
    client.find_or_create_user_by_account = AsyncMock(
        side_effect=UserBackendError("boom", status_code=503)
    )
    client.get_user_by_id = AsyncMock(side_effect=UserBackendError("boom", status_code=500))
    repo = BackendUserRepository(client)

    with pytest.raises(RepositoryError):
        await repo.find_or_create_user_by_account(user_draft(), account_draft())
    with pytest.raises(RepositoryError):
        await repo.get_user_by_id(1)


@pytest.mark.asyncio
async def test_backend_repository_missing_id():
    client = MagicMock()
    client.find_or_create_user_by_account = AsyncMock(return_value={})
    repo = BackendUserRepository(client)

    with pytest.raises(RepositoryError):
        await repo.find_or_create_user_by_account(user_draft(), account_draft())


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"userId": "abc"}, {"id": [1]}, [1, 2], "42"])
async def test_backend_repository_malformed_find_or_create_response(payload):
    """백엔드 응답 형식이 잘못되면 raw 예외 대신 RepositoryError여야 함.

    Given: 백엔드가 숫자가 아닌 userId 또는 객체가 아닌 body를 반환하면
    When: find_or_create_user_by_account를 호출하면
    Then: RepositoryError가 발생해야 함
    """
    client = MagicMock()
    client.find_or_create_user_by_account = AsyncMock(return_value=payload)
    repo = BackendUserRepository(client)

    with pytest.raises(RepositoryError):
        await repo.find_or_create_user_by_account(user_draft(), account_draft())


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [[{"id": 42}], None, {"user": {"id": "x"}}])
async def test_backend_repository_malformed_user_payload(payload):
    client = MagicMock()
    client.get_user_by_id = AsyncMock(return_value=payload)
    repo = BackendUserRepository(client)

    with pytest.raises(RepositoryError):
        await repo.get_user_by_id(42)


@pytest.mark.asyncio
async def test_backend_repository_get_user():
    client = MagicMock()
    client.get_user_by_id = AsyncMock(
        return_value={
            "user": {
                "id": 42,
                "name": "Alice",
                "emailAddress": "a@x.com",
                "githubId": 555,
                "githubLogin": "alice",
                "role": "user",
                "createdAt": "2024-01-01T00:00:00Z",
            }
        }
    )
    repo = BackendUserRepository(client)

    profile = await repo.get_user_by_id(42)

    assert profile.id == 42
    assert profile.github_login == "alice"
    client.get_user_by_id.assert_awaited_once_with(42)


@pytest.mark.asyncio
async def test_backend_repository_get_user_not_found():
    client = MagicMock()
    client.get_user_by_id = AsyncMock(side_effect=UserBackendError("missing", status_code=404))
    repo = BackendUserRepository(client)

    assert await repo.get_user_by_id(42) is None


def test_build_user_repository_selects_store():
    assert isinstance(build_user_repository(make_settings()), InMemoryUserRepository)
    backend = build_user_repository(
        make_settings(USER_BACKEND_BASE_URL="http://users.internal:9001/")
    )
    assert isinstance(backend, BackendUserRepository)
    assert backend.client.base_url == "http://users.internal:9001"
