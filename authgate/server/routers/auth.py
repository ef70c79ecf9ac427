"""GitHub OAuth login endpoints.

이 라우터는 OAUTH_CLIENT_ID / OAUTH_CLIENT_SECRET이 설정된 경우에만 등록됩니다.

엔드포인트:
- GET /login/{provider}: GitHub 인증 페이지로 리다이렉트
- GET /login/{provider}/callback: code 교환 → 사용자 연결 → 세션 쿠키 발급
- GET /me: 세션 쿠키로 인증된 사용자 프로필 조회 (DB 조회 없음)
"""
import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from authgate.models.user import ProviderType, UserProfile
from authgate.server.deps import AuthContext, authenticate, get_auth_context, get_settings
from authgate.server.errors import UpstreamAuthError
from authgate.server.schemas import AuthCallbackResponse, ErrorResponse
from authgate.server.settings import Settings

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "oauth2-redirect-state"
STATE_COOKIE_MAX_AGE = 600


@router.get("/login/{provider}")
async def login_redirect(
    provider: ProviderType,
    context: AuthContext = Depends(get_auth_context),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """GitHub OAuth 인증 페이지로 리다이렉트합니다.

    state 값은 짧은 수명의 HttpOnly 쿠키에도 저장되어
    콜백에서 쿼리의 state와 비교됩니다 (OAUTH_CHECK_STATE=false로 끌 수 있음).
    """
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(context.login_service.authorize_url(state))
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=state,
        max_age=STATE_COOKIE_MAX_AGE,
        path="/",
        secure=settings.JWT_COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get(
    "/login/{provider}/callback",
    response_model=AuthCallbackResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def login_callback(
    provider: ProviderType,
    request: Request,
    response: Response,
    code: str = Query(..., min_length=1),
    state: Optional[str] = Query(None),
    context: AuthContext = Depends(get_auth_context),
    settings: Settings = Depends(get_settings),
) -> AuthCallbackResponse:
    """GitHub OAuth 콜백을 처리합니다.

    1. code → access token 교환
    2. GET /user 로 GitHub 사용자 조회
    3. 연결 계정 find-or-create
    4. 세션 JWT 발급 후 쿠키 설정 (요청당 정확히 한 번)

    Raises:
        UpstreamAuthError: 401 - GitHub 인증 실패 또는 state 불일치
        LinkageError: 500 - 사용자 저장 실패
    """
    if settings.OAUTH_CHECK_STATE:
        expected = request.cookies.get(STATE_COOKIE_NAME)
        if not state or not expected or not secrets.compare_digest(state, expected):
            raise UpstreamAuthError("Invalid OAuth state.")

    result = await context.login_service.login(code)
    context.session_issuer.issue(response, result.profile, result.access_token)
    if STATE_COOKIE_NAME in request.cookies:
        response.delete_cookie(STATE_COOKIE_NAME, path="/")
    return AuthCallbackResponse(success=True, profile=result.profile)


@router.get(
    "/me",
    response_model=AuthCallbackResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(profile: UserProfile = Depends(authenticate)) -> AuthCallbackResponse:
    """Return the profile embedded in the session cookie."""
    return AuthCallbackResponse(success=True, profile=profile)
