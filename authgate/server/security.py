"""Session token minting and verification.

로그인 성공 시 사용자 프로필 + GitHub access token을 HS256 JWT로 서명하여
HttpOnly 쿠키로 내려주고, 보호된 라우트에서는 같은 쿠키를 검증합니다.

- 서버에는 세션 상태를 저장하지 않음 (서명 + 만료 시각이 유일한 판단 근거)
- 세션 수명은 7일로 고정, 쿠키 Expires도 토큰 exp와 동일하게 설정
- JWT_SECRET을 바꾸면 기존 세션은 모두 무효화됨 (키 로테이션 미지원)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Response
from pydantic import ValidationError

from authgate.models.user import UserProfile, utcnow
from authgate.server.errors import SessionVerificationError
from authgate.server.settings import Settings

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=7)
SESSION_ALGORITHM = "HS256"
ACCESS_TOKEN_CLAIM = "accessToken"


class JWTVerificationError(Exception):
    """Raised when a session JWT cannot be verified."""


@dataclass(frozen=True)
class SessionToken:
    value: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SessionPayload:
    """Decoded session: the profile as it was at mint time plus the GitHub token."""

    profile: UserProfile
    access_token: str
    issued_at: datetime
    expires_at: datetime


def _as_utc(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionIssuer:
    """Signs session tokens and writes the session cookie."""

    def __init__(self, settings: Settings) -> None:
        self.secret = settings.JWT_SECRET
        self.cookie_name = settings.JWT_COOKIE_NAME
        self.cookie_domain = settings.JWT_COOKIE_DOMAIN
        self.cookie_secure = settings.JWT_COOKIE_SECURE
        self.cookie_samesite = settings.cookie_samesite

    def mint(
        self,
        profile: UserProfile,
        access_token: str,
        now: Optional[datetime] = None,
    ) -> SessionToken:
        # naive datetime은 UTC로 간주 (쿠키 Expires 포맷에는 tz-aware 값이 필요)
        issued_at = _to_utc(now or utcnow()).replace(microsecond=0)
        expires_at = issued_at + SESSION_TTL
        claims: Dict[str, Any] = profile.model_dump(mode="json", by_alias=True)
        claims.update(
            {
                ACCESS_TOKEN_CLAIM: access_token,
                "sub": str(profile.id),
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
            }
        )
        value = jwt.encode(claims, self.secret, algorithm=SESSION_ALGORITHM)
        return SessionToken(value=value, issued_at=issued_at, expires_at=expires_at)

    def cookie_kwargs(self, token: SessionToken) -> Dict[str, Any]:
        return {
            "key": self.cookie_name,
            "value": token.value,
            "expires": token.expires_at,
            "path": "/",
            "domain": self.cookie_domain,
            "secure": self.cookie_secure,
            "httponly": True,
            "samesite": self.cookie_samesite,
        }

    def issue(
        self,
        response: Response,
        profile: UserProfile,
        access_token: str,
        now: Optional[datetime] = None,
    ) -> SessionToken:
        """Mint one token and set it as the session cookie on `response`."""
        token = self.mint(profile, access_token, now=now)
        response.set_cookie(**self.cookie_kwargs(token))
        logger.info(
            "Issued session for user %s (expires %s)",
            profile.id,
            token.expires_at.isoformat(),
        )
        return token


class SessionVerifier:
    """Validates session tokens taken from the session cookie."""

    def __init__(self, settings: Settings) -> None:
        self.secret = settings.JWT_SECRET
        self.cookie_name = settings.JWT_COOKIE_NAME

    def verify(self, token: Optional[str], now: Optional[datetime] = None) -> SessionPayload:
        """Verify signature and expiry and decode the embedded profile.

        Raises:
            SessionVerificationError: 쿠키 없음, 형식 오류, 서명 불일치, 만료, payload 오류
                (원인과 관계없이 모두 401)
        """
        if not token:
            raise SessionVerificationError(
                cause=JWTVerificationError("Missing session cookie")
            )

        try:
            # 만료는 아래에서 주입 가능한 시계로 직접 검사
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[SESSION_ALGORITHM],
                options={
                    "require": ["exp", "iat", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise SessionVerificationError(cause=exc) from exc

        current = int(_to_utc(now or utcnow()).timestamp())
        try:
            expires_ts = int(claims.pop("exp"))
            issued_ts = int(claims.pop("iat"))
        except (TypeError, ValueError) as exc:
            raise SessionVerificationError(cause=exc) from exc
        if current >= expires_ts:
            raise SessionVerificationError(
                cause=jwt.ExpiredSignatureError("Signature has expired")
            )

        access_token = claims.pop(ACCESS_TOKEN_CLAIM, None)
        if not isinstance(access_token, str):
            raise SessionVerificationError(
                cause=JWTVerificationError("Session token missing access token")
            )

        try:
            profile = UserProfile.model_validate(claims)
        except ValidationError as exc:
            raise SessionVerificationError(cause=exc) from exc

        return SessionPayload(
            profile=profile,
            access_token=access_token,
            issued_at=_as_utc(issued_ts),
            expires_at=_as_utc(expires_ts),
        )
