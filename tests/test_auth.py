"""Tests for the session store, login state and the auth dependency."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient

from thumbcraft.dependencies.auth import require_auth
from thumbcraft.errors import AuthError, ValidationError
from thumbcraft.routes.auth import (
    Auth0Client,
    SessionData,
    SessionStore,
    build_state,
    get_auth0_client,
    parse_state,
    session_store,
)
from thumbcraft_shared.config import get_settings


def make_request(cookies: dict[str, str]) -> MagicMock:
    request = MagicMock()
    request.cookies = cookies
    return request


@pytest.fixture
def auth_configured(monkeypatch):
    monkeypatch.setenv("AUTH_DOMAIN", "example.auth0.com")
    monkeypatch.setenv("AUTH_CLIENT_ID", "client")
    monkeypatch.setenv("AUTH_CLIENT_SECRET", "secret")
    monkeypatch.setenv("AUTH_SESSION_SECRET", "session-secret")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def session_data(sub: str | None = "auth0|abc", ttl: int = 3600) -> SessionData:
    user_info = {"email": "creator@example.com", "name": "Creator"}
    if sub:
        user_info["sub"] = sub
    return SessionData(
        user_info=user_info,
        access_token="token",
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
    )


@pytest.mark.unit
class TestSessionStore:
    async def test_round_trip(self):
        session_id = await session_store.create_session(session_data())

        stored = await session_store.get_session(session_id)

        assert stored is not None
        assert stored.user_info["sub"] == "auth0|abc"
        await session_store.delete_session(session_id)
        assert await session_store.get_session(session_id) is None

    async def test_expired_session_is_dropped(self):
        session_id = await session_store.create_session(session_data(ttl=-1))

        assert await session_store.get_session(session_id) is None


@pytest.mark.unit
class TestRequireAuth:
    async def test_missing_cookie(self):
        with pytest.raises(AuthError, match="Unauthorized"):
            await require_auth(make_request({}))

    async def test_unknown_session(self):
        with pytest.raises(AuthError):
            await require_auth(make_request({"session": "does-not-exist"}))

    async def test_session_without_subject(self):
        session_id = await session_store.create_session(session_data(sub=None))

        with pytest.raises(AuthError):
            await require_auth(make_request({"session": session_id}))

    async def test_valid_session_resolves_user(self):
        session_id = await session_store.create_session(session_data())

        user = await require_auth(make_request({"session": session_id}))

        assert user.sub == "auth0|abc"
        assert user.email == "creator@example.com"


@pytest.mark.unit
class TestLoginState:
    def test_round_trip(self):
        state = build_state("http://localhost:3000/dashboard", "secret")

        assert parse_state(state, "secret")["returnTo"] == "http://localhost:3000/dashboard"

    def test_tampered_state_rejected(self):
        state = build_state("http://localhost:3000/dashboard", "secret")

        with pytest.raises(ValidationError, match="Invalid state"):
            parse_state(state, "other-secret")


@pytest.mark.unit
class TestAuthRoutes:
    def test_session_unauthenticated(self, client):
        response = client.get("/api/auth/session")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"user": None, "isAuthenticated": False}

    def test_session_authenticated(self, client):
        session_store._sessions["known-session"] = session_data()

        response = client.get("/api/auth/session", cookies={"session": "known-session"})

        assert response.json()["isAuthenticated"] is True
        assert response.json()["user"]["id"] == "auth0|abc"

    def test_logout_without_session(self, client):
        response = client.post("/api/auth/logout")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_callback_without_code(self, client, auth_configured):
        response = client.get("/api/auth/callback", follow_redirects=False)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Missing code or state"

    def test_login_redirects_to_authorize(self, client, auth_configured):
        response = client.get("/api/auth/login", follow_redirects=False)

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"].startswith("https://example.auth0.com/authorize?")

    def test_login_without_configuration_is_500(self, client):
        response = client.get("/api/auth/login", follow_redirects=False)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "Auth0 is not configured"

    def test_callback_creates_session_cookie(self, app, auth_configured):
        def auth0(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth/token":
                assert b"code=the-code" in request.content
                return httpx.Response(200, json={"access_token": "at-1"})
            assert request.headers["Authorization"] == "Bearer at-1"
            return httpx.Response(200, json={"sub": "auth0|new", "email": "new@example.com"})

        settings = get_settings()
        app.dependency_overrides[get_auth0_client] = lambda: Auth0Client(
            settings.auth, transport=httpx.MockTransport(auth0)
        )
        state = build_state("http://localhost:3000/dashboard", settings.auth.session_secret)

        with TestClient(app) as client:
            response = client.get(
                "/api/auth/callback",
                params={"code": "the-code", "state": state},
                follow_redirects=False,
            )

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == "http://localhost:3000/dashboard"
        session_id = response.headers["set-cookie"].split(";", 1)[0].removeprefix("session=")
        assert session_store._sessions[session_id].user_info["sub"] == "auth0|new"

    def test_callback_rejected_code(self, app, auth_configured):
        settings = get_settings()
        app.dependency_overrides[get_auth0_client] = lambda: Auth0Client(
            settings.auth,
            transport=httpx.MockTransport(lambda request: httpx.Response(403, json={})),
        )
        state = build_state("http://localhost:3000/dashboard", settings.auth.session_secret)

        with TestClient(app) as client:
            response = client.get(
                "/api/auth/callback",
                params={"code": "bad", "state": state},
                follow_redirects=False,
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "Token exchange failed"


@pytest.mark.unit
class TestSessionPurge:
    async def test_expired_sessions_are_purged_on_create(self):
        store = SessionStore()
        await store.create_session(session_data(ttl=-1))
        await store.create_session(session_data(ttl=-1))

        await store.create_session(session_data())

        assert len(store) == 1
