"""Application settings loaded from environment variables."""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application configuration settings."""

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3450
    LOG_LEVEL: str = "INFO"

    # GitHub OAuth (둘 다 설정된 경우에만 로그인 기능 활성화)
    OAUTH_CLIENT_ID: Optional[str] = None
    OAUTH_CLIENT_SECRET: Optional[str] = None
    OAUTH_SCOPE: str = "user:email"
    OAUTH_HTTP_TIMEOUT: float = 10.0
    OAUTH_CHECK_STATE: bool = True

    # 콜백 redirect URI 생성에 사용 (GitHub 앱에 등록된 값과 정확히 일치해야 함)
    API_BASE_URL: str = "http://localhost:3450"

    # Session JWT / cookie
    JWT_SECRET: str = "localhost"
    JWT_COOKIE_NAME: str = "o-token"
    JWT_COOKIE_DOMAIN: str = "localhost"
    JWT_COOKIE_SECURE: bool = False
    JWT_COOKIE_SAME_SITE: str = "false"

    # User store (미설정 시 in-memory 저장소 사용)
    USER_BACKEND_BASE_URL: Optional[str] = None
    USER_BACKEND_TIMEOUT: float = 10.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def oauth_enabled(self) -> bool:
        """OAuth login is enabled only if both client id and secret are set."""
        return bool(self.OAUTH_CLIENT_ID and self.OAUTH_CLIENT_SECRET)

    @property
    def github_callback_uri(self) -> str:
        return f"{self.API_BASE_URL.rstrip('/')}/login/github/callback"

    @property
    def cookie_samesite(self) -> Optional[str]:
        """SameSite policy for the session cookie.

        `true`/`strict` → Strict, `lax`, `none`, 그 외(`false` 등)는 속성 생략.
        """
        raw = (self.JWT_COOKIE_SAME_SITE or "").strip().lower()
        if raw in ("1", "true", "yes", "on", "strict"):
            return "strict"
        if raw in ("lax", "none"):
            return raw
        return None


settings = Settings()
