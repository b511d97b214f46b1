"""
Lime Core Backend — Authentication API Tests
==============================================

What:  POST /auth/authenticate, GET /auth/me and the Google redirect pair.
How:   The identity provider dependency is overridden with one backed by
       httpx.MockTransport.
"""

from http.cookies import SimpleCookie
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from lime_core.config import settings
from lime_core.dependencies import get_identity_provider
from lime_core.routes.auth import OAUTH_NONCE_COOKIE
from lime_core.security import create_oauth_state, decode_access_token, verify_oauth_state
from lime_core.services.identity_provider import GoogleIdentityProvider

from conftest import TEST_PASSWORD

FAILURE_URL = "http://frontend.test/login?error=Google%20authentication%20failed"
NONCE = "browser-nonce"
NONCE_COOKIE = {"Cookie": f"{OAUTH_NONCE_COOKIE}={NONCE}"}


@pytest.fixture
def google_provider(app, monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", "client-id")
    monkeypatch.setattr(settings, "google_client_secret", "client-secret")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(settings.google_token_url):
            return httpx.Response(200, json={"access_token": "ya29.token"})
        return httpx.Response(
            200,
            json={"sub": "g-42", "email": "lee@example.test", "email_verified": True, "name": "Lee"},
        )

    provider = GoogleIdentityProvider(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    app.dependency_overrides[get_identity_provider] = lambda: provider
    return provider


class TestPasswordEndpoint:

    @pytest.mark.asyncio
    async def test_authenticate_success(self, test_client, user):
        response = await test_client.post(
            "/auth/authenticate",
            json={"email": user.email, "password": TEST_PASSWORD},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "success"
        assert body["message"] == "Authentication successful"
        assert body["data"]["user"]["email"] == user.email
        assert decode_access_token(body["data"]["access_token"]).id == user.id

    @pytest.mark.asyncio
    async def test_authenticate_bad_password(self, test_client, user):
        response = await test_client.post(
            "/auth/authenticate",
            json={"email": user.email, "password": "nope"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "status": "error",
            "data": None,
            "message": "Invalid email or password",
        }

    @pytest.mark.asyncio
    async def test_me(self, test_client, user, auth_headers):
        response = await test_client.get("/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user.id

    @pytest.mark.asyncio
    async def test_me_requires_token(self, test_client):
        response = await test_client.get("/auth/me")
        assert response.status_code == 401


class TestGoogleRedirects:

    @pytest.mark.asyncio
    async def test_login_redirects_to_google(self, test_client, google_provider):
        response = await test_client.get("/auth/google")

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == (
            settings.google_authorize_url
        )
        state = parse_qs(location.query)["state"][0]

        cookie = SimpleCookie()
        cookie.load(response.headers["set-cookie"])
        nonce = cookie[OAUTH_NONCE_COOKIE]
        assert nonce["path"] == "/auth/google"
        assert nonce["httponly"]
        assert nonce["samesite"].lower() == "lax"
        verify_oauth_state(state, nonce.value)

    @pytest.mark.asyncio
    async def test_login_without_configuration_redirects_to_failure(self, test_client):
        response = await test_client.get("/auth/google")

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL

    @pytest.mark.asyncio
    async def test_callback_success_redirects_with_token(self, test_client, google_provider):
        response = await test_client.get(
            "/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state(NONCE)},
            headers=NONCE_COOKIE,
        )

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.path == "/login/success"
        token = parse_qs(location.query)["token"][0]
        identity = decode_access_token(token)
        assert identity.email == "lee@example.test"
        assert identity.current_organization_id is not None
        assert "Max-Age=0" in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_callback_with_bad_state_redirects_to_failure(
        self, test_client, google_provider
    ):
        response = await test_client.get(
            "/auth/google/callback",
            params={"code": "auth-code", "state": "forged"},
            headers=NONCE_COOKIE,
        )

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL

    @pytest.mark.asyncio
    async def test_callback_with_provider_error_redirects_to_failure(
        self, test_client, google_provider
    ):
        response = await test_client.get(
            "/auth/google/callback", params={"error": "access_denied"}
        )

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL

    @pytest.mark.asyncio
    async def test_callback_without_nonce_cookie_redirects_to_failure(
        self, test_client, google_provider
    ):
        response = await test_client.get(
            "/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state(NONCE)},
        )

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL

    @pytest.mark.asyncio
    async def test_callback_in_another_browser_redirects_to_failure(
        self, test_client, google_provider
    ):
        response = await test_client.get(
            "/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state(NONCE)},
            headers={"Cookie": f"{OAUTH_NONCE_COOKIE}=someone-else"},
        )

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL
        assert "Max-Age=0" in response.headers["set-cookie"]
