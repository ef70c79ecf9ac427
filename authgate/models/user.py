"""User, linked-account and identity models.

GitHub OAuth 로그인 흐름에서 사용하는 모델입니다.
- ExternalIdentity: GitHub에서 매 로그인마다 새로 가져오는 외부 신원 (저장하지 않음)
- UserDraft / AccountDraft: 계정 연결(find-or-create)의 입력값
- User / LinkedAccount: 저장소에 보관되는 레코드
- UserProfile: 세션 토큰과 API 응답에 실리는 사용자 프로필
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderType(str, Enum):
    """OAuth providers. Only GitHub is wired."""
    GITHUB = "github"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ExternalIdentity(BaseModel):
    """인증된 GitHub 사용자 정보.

    Attributes:
        provider_user_id: GitHub 사용자 ID (숫자 ID를 문자열로 변환, 연결 키)
        provider_login: GitHub 사용자명
        display_name: 표시 이름 (name이 없으면 login)
        email: 공개 이메일 (optional)
        avatar_url: 프로필 이미지 URL
    """
    provider_user_id: str
    provider_login: str
    display_name: str
    email: Optional[str] = None
    avatar_url: str = ""

    class Config:
        frozen = True


class UserDraft(BaseModel):
    """새 사용자 생성 시 사용되는 값. 기존 사용자는 이 값으로 덮어쓰지 않습니다."""
    name: str
    email_address: Optional[str] = None
    # 이메일 수신은 기본적으로 비활성화 (opt-in은 다른 곳에서 처리)
    email_get_updates: bool = False
    avatar_url: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: datetime = Field(default_factory=utcnow)
    enabled: bool = True


class AccountDraft(BaseModel):
    provider: ProviderType
    provider_account_id: str
    provider_account_login: str
    access_token: str


class User(UserDraft):
    id: int


class LinkedAccount(AccountDraft):
    """Join record between one provider identity and one local user.

    `(provider, provider_account_id)` is unique.
    """
    id: int
    user_id: int


class UserProfile(BaseModel):
    """사용자 프로필.

    세션 JWT payload와 콜백 응답 본문에 그대로 실립니다.
    JSON 직렬화 시 camelCase 필드명을 사용합니다 (githubLogin, avatarUrl 등).
    """
    id: int
    name: str
    email_address: Optional[str] = None
    email_get_updates: bool = False
    github_id: Optional[int] = None
    github_login: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Alice",
                "emailAddress": "alice@example.com",
                "emailGetUpdates": False,
                "githubId": 555,
                "githubLogin": "alice",
                "avatarUrl": "https://avatars.githubusercontent.com/u/555",
                "role": "user",
                "createdAt": "2024-01-01T00:00:00Z",
            }
        }

    @classmethod
    def from_records(cls, user: User, account: Optional[LinkedAccount]) -> "UserProfile":
        github_id: Optional[int] = None
        github_login: Optional[str] = None
        if account is not None:
            github_login = account.provider_account_login
            if account.provider_account_id.isdigit():
                github_id = int(account.provider_account_id)
        return cls(
            id=user.id,
            name=user.name,
            email_address=user.email_address,
            email_get_updates=user.email_get_updates,
            github_id=github_id,
            github_login=github_login,
            avatar_url=user.avatar_url,
            role=user.role,
            created_at=user.created_at,
        )

    @classmethod
    def from_backend(cls, payload: Dict[str, Any]) -> "UserProfile":
        """Create a profile from a user backend payload (camelCase or snake_case)."""
        return cls.model_validate(payload)
