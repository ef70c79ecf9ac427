"""Pytest configuration and fixtures.

이 모듈은 모든 테스트에서 공유되는 pytest fixture들을 정의합니다.

주요 Fixture:
- oauth_settings: OAuth가 활성화된 테스트 설정
- user_repo: in-memory 사용자 저장소
- client: OAuth가 활성화된 FastAPI 테스트 클라이언트
- disabled_client: OAuth 자격 증명이 없는 FastAPI 테스트 클라이언트
- mock_github_api: GitHub OAuth API mock (토큰 교환 + GET /user)

각 fixture는 실제 GitHub를 호출하지 않고 더미 데이터를 반환합니다.
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch

from authgate.repositories.user_repo import InMemoryUserRepository
from authgate.server.main import create_app
from helpers import GITHUB_USER, make_response, make_settings


@pytest.fixture
def oauth_settings():
    """OAuth가 활성화된 설정을 생성합니다."""
    return make_settings()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def app(oauth_settings, user_repo):
    return create_app(oauth_settings, user_repo=user_repo)


@pytest.fixture
def client(app):
    """FastAPI 테스트 클라이언트를 생성합니다.

    사용법:
        def test_endpoint(client):
            response = client.get("/healthz")
            assert response.status_code == 200
    """
    return TestClient(app)


@pytest.fixture
def disabled_client():
    """OAUTH_CLIENT_ID / OAUTH_CLIENT_SECRET이 없는 앱의 테스트 클라이언트."""
    settings = make_settings(OAUTH_CLIENT_ID=None, OAUTH_CLIENT_SECRET=None)
    return TestClient(create_app(settings))


@pytest.fixture
def mock_github_api():
    """GitHub OAuth API를 mocking합니다.

    Yields:
        AsyncMock: GitHub API 응답을 시뮬레이션하는 mock 클라이언트

    설명:
        - POST /login/oauth/access_token: access_token=tok1 반환
        - GET /user: alice (id=555) 반환
        - 테스트에서 `mock_github_api.get.return_value` 등을 바꿔 응답을 조정
    """
    with patch("authgate.adapters.github.httpx.AsyncClient") as mock_client:
        mock_instance = AsyncMock()

        mock_instance.post = AsyncMock(
            return_value=make_response({"access_token": "tok1", "token_type": "bearer"})
        )
        mock_instance.get = AsyncMock(return_value=make_response(dict(GITHUB_USER)))
        mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
        mock_instance.__aexit__ = AsyncMock(return_value=False)

        mock_client.return_value = mock_instance
        yield mock_instance
