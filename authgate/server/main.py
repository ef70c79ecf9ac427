"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authgate.repositories.user_repo import UserRepository
from authgate.server.deps import build_auth_context
from authgate.server.errors import APIError, api_error_handler
from authgate.server.routers import auth, health
from authgate.server.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# FastAPI 생명주기 관리
@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작/종료 시 실행되는 코드"""
    logger.info("Starting application...")
    if app.state.auth.enabled:
        logger.info("GitHub OAuth login enabled (callback: %s)", app.state.settings.github_callback_uri)
    else:
        logger.warning("OAUTH_CLIENT_ID/OAUTH_CLIENT_SECRET not set; OAuth login disabled")

    yield

    logger.info("Shutting down application...")


def create_app(
    settings: Optional[Settings] = None,
    user_repo: Optional[UserRepository] = None,
) -> FastAPI:
    """Build the app. Auth routes are registered only when OAuth is configured."""
    settings = settings or default_settings

    app = FastAPI(
        title="authgate",
        description="GitHub OAuth login issuing a signed cookie session",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth = build_auth_context(settings, user_repo=user_repo)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIError, api_error_handler)

    # Include routers
    app.include_router(health.router)

    # 조건부: OAuth 자격 증명이 있을 때만 로그인/콜백/보호 라우트 등록
    if app.state.auth.enabled:
        app.include_router(auth.router)

    @app.get("/")
    async def root():
        """Root endpoint.

        Returns:
            Welcome message with API info
        """
        return {
            "message": "authgate API",
            "version": "1.0.0",
            "oauth_enabled": app.state.auth.enabled,
            "docs": "/docs",
        }

    return app


configure_logging(default_settings.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "authgate.server.main:app",
        host=default_settings.SERVER_HOST,
        port=default_settings.SERVER_PORT,
        reload=True
    )
