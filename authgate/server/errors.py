"""Typed API failures and their FastAPI exception handler.

클라이언트에는 status code와 message만 노출하고,
원인(cause)은 로그에만 남깁니다.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Failure carrying an HTTP status, a client-safe message and the underlying cause."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error."

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message or self.message
        self.cause = cause
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class UpstreamAuthError(APIError):
    """Code exchange or identity fetch against the provider failed."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Failed to authenticate with GitHub."


class LinkageError(APIError):
    """Persistence failure while finding or creating the local user."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Failed to link account."


class SessionVerificationError(APIError):
    """Missing, malformed, forged or expired session credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Failed to verify JWT token."


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed (%s): %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.cause or exc.message,
        )
    else:
        logger.warning(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.cause or exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )
