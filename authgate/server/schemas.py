"""Pydantic schemas for request/response models."""
from typing import Dict

from pydantic import BaseModel

from authgate.models.user import UserProfile


class AuthCallbackResponse(BaseModel):
    """GitHub OAuth callback 응답 모델.

    세션 토큰은 HttpOnly 쿠키로만 전달되며 본문에는 포함되지 않습니다.

    Attributes:
        success: 인증 성공 여부
        profile: 사용자 프로필 (camelCase)
    """
    success: bool
    profile: UserProfile

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "profile": UserProfile.model_config["json_schema_extra"]["example"],
            }
        }


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class ReadinessResponse(BaseModel):
    status: str
    checks: Dict[str, bool]
