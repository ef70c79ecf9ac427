"""Shared test data and helpers."""
from urllib.parse import parse_qs, urlparse
from unittest.mock import MagicMock

from authgate.server.settings import Settings


TEST_JWT_SECRET = "test-jwt-secret"
TEST_COOKIE_NAME = "o-token"

GITHUB_USER = {
    "id": 555,
    "login": "alice",
    "name": "Alice",
    "email": "a@x.com",
    "avatar_url": "http://x/a.png",
}


def make_settings(**overrides) -> Settings:
    values = {
        "OAUTH_CLIENT_ID": "test_client_id",
        "OAUTH_CLIENT_SECRET": "test_client_secret",
        "API_BASE_URL": "http://localhost:3450",
        "JWT_SECRET": TEST_JWT_SECRET,
        "JWT_COOKIE_NAME": TEST_COOKIE_NAME,
        "JWT_COOKIE_DOMAIN": "localhost",
        "JWT_COOKIE_SECURE": False,
        "JWT_COOKIE_SAME_SITE": "false",
        "USER_BACKEND_BASE_URL": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_response(payload) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    return response


def session_cookie_header(response, cookie_name: str = TEST_COOKIE_NAME):
    """Return the Set-Cookie header for `cookie_name`, or None."""
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{cookie_name}="):
            return header
    return None


def cookie_value(set_cookie: str) -> str:
    return set_cookie.split(";", 1)[0].split("=", 1)[1]


def cookie_attributes(set_cookie: str) -> dict:
    attrs = {}
    for part in set_cookie.split(";")[1:]:
        name, _, value = part.strip().partition("=")
        attrs[name.lower()] = value
    return attrs


STATE_COOKIE_NAME = "oauth2-redirect-state"


def start_login(client) -> str:
    """Visit /login/github and return the issued state.

    TestClient의 cookie jar에 state 쿠키가 남아 다음 콜백 요청에 함께 전송됩니다.
    """
    response = client.get("/login/github", follow_redirects=False)
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


def callback_url(client, code: str = "abc123") -> str:
    state = start_login(client)
    return f"/login/github/callback?code={code}&state={state}"
