"""Health check endpoints."""
from fastapi import APIRouter, Depends
from typing import Dict

from authgate.server.deps import AuthContext, get_auth_context, get_settings
from authgate.server.schemas import ReadinessResponse
from authgate.server.settings import Settings

router = APIRouter()

DEFAULT_JWT_SECRET = "localhost"


@router.get("/healthz")
async def health_check() -> Dict[str, str]:
    """Basic health check endpoint.

    Returns:
        Simple status response
    """
    return {"status": "ok"}


@router.get("/readyz", response_model=ReadinessResponse)
async def readiness_check(
    settings: Settings = Depends(get_settings),
    context: AuthContext = Depends(get_auth_context),
) -> ReadinessResponse:
    """Readiness check endpoint.

    OAuth 로그인 활성화 여부, JWT 시크릿 설정 여부, 사용자 저장소 구성 여부를 확인합니다.
    """
    checks = {
        "oauth_enabled": context.enabled,
        "jwt_secret_configured": bool(settings.JWT_SECRET)
        and settings.JWT_SECRET != DEFAULT_JWT_SECRET,
        "user_store": context.user_repo is not None,
    }

    ready = all(checks.values())

    return ReadinessResponse(status="ok" if ready else "not_ready", checks=checks)
