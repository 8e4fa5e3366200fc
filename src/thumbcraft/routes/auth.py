"""Auth0 login flow and server-side sessions.

The identity provider authenticates the user; this module only exchanges
the authorization code, keeps the resulting user info in a session store
and binds the session id to a cookie.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode, urlparse

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from thumbcraft_shared.config import AuthSettings, Settings, get_settings
from thumbcraft_shared.logging import get_logger

from ..errors import AuthError, StudioError, ValidationError

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Auth"])

STATE_TTL_SECONDS = 600


@dataclass
class SessionData:
    user_info: dict[str, Any]
    access_token: str
    expires_at: datetime


class SessionResponse(BaseModel):
    user: dict[str, Any] | None = None
    isAuthenticated: bool


class SessionStore:
    """In-memory session store keyed by an opaque random id.

    Expired entries are purged whenever a session is created.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionData] = {}
        self._lock = asyncio.Lock()

    def _purge_expired(self, now: datetime) -> None:
        for session_id in [sid for sid, data in self._sessions.items() if data.expires_at <= now]:
            del self._sessions[session_id]

    async def create_session(self, data: SessionData) -> str:
        session_id = secrets.token_urlsafe(32)
        async with self._lock:
            self._purge_expired(datetime.now(timezone.utc))
            self._sessions[session_id] = data
        return session_id

    async def get_session(self, session_id: str) -> SessionData | None:
        async with self._lock:
            data = self._sessions.get(session_id)
            if data and data.expires_at <= datetime.now(timezone.utc):
                del self._sessions[session_id]
                return None
            return data

    async def delete_session(self, session_id: str) -> None:
        async with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


session_store = SessionStore()


def _b64encode(payload: bytes) -> str:
    return base64.urlsafe_b64encode(payload).decode().rstrip("=")


def _b64decode(payload: str) -> bytes:
    return base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))


def _sign(value: str, secret: str) -> str:
    return _b64encode(hmac.new(secret.encode(), value.encode(), hashlib.sha256).digest())


def build_state(return_to: str, secret: str) -> str:
    """Sign the post-login redirect target into the OAuth ``state`` value."""
    expires = datetime.now(timezone.utc) + timedelta(seconds=STATE_TTL_SECONDS)
    payload = {
        "returnTo": return_to,
        "nonce": secrets.token_urlsafe(16),
        "exp": int(expires.timestamp()),
    }
    raw = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    return f"{raw}.{_sign(raw, secret)}"


def parse_state(state: str, secret: str) -> dict[str, Any]:
    """Verify and decode a ``state`` value produced by ``build_state``."""
    raw, _, signature = state.partition(".")
    if not signature or not hmac.compare_digest(signature, _sign(raw, secret)):
        raise ValidationError("Invalid state")

    payload = json.loads(_b64decode(raw))
    if payload.get("exp", 0) < int(datetime.now(timezone.utc).timestamp()):
        raise ValidationError("State expired")
    return payload


def allowed_return_to(return_to: str, settings: Settings) -> str:
    """Only redirect back to an origin the API already trusts for CORS."""
    parsed = urlparse(return_to)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("Invalid returnTo")
    origin = f"{parsed.scheme}://{parsed.netloc}"
    regex = settings.api.cors_origin_regex
    if origin not in settings.api.cors_origins and not (regex and re.match(regex, origin)):
        raise ValidationError("Return URL not allowed")
    return return_to


def _callback_url(request: Request) -> str:
    proto = request.headers.get("X-Forwarded-Proto", request.url.scheme)
    host = request.headers.get("Host", request.url.netloc)
    return f"{proto}://{host}/api/auth/callback"


class Auth0Client:
    """Authorization-code flow against one Auth0 tenant."""

    REQUIRED = ("domain", "client_id", "client_secret", "session_secret")

    def __init__(self, auth: AuthSettings, transport: httpx.AsyncBaseTransport | None = None):
        missing = [name for name in self.REQUIRED if not getattr(auth, name)]
        if missing:
            logger.warning("Auth0 configuration missing", missing=missing)
            raise StudioError("Auth0 is not configured")
        self.auth = auth
        self._transport = transport

    def authorize_url(self, redirect_uri: str, return_to: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.auth.client_id,
            "redirect_uri": redirect_uri,
            "scope": "openid profile email",
            "state": build_state(return_to, self.auth.session_secret),
        }
        if self.auth.audience:
            params["audience"] = self.auth.audience
        return f"https://{self.auth.domain}/authorize?{urlencode(params)}"

    async def exchange(self, code: str, redirect_uri: str) -> tuple[str, dict[str, Any]]:
        """Trade the authorization code for an access token and the user's profile.

        Raises:
            StudioError: If Auth0 rejects the code or the userinfo call.
        """
        base = f"https://{self.auth.domain}"
        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            token_response = await client.post(
                f"{base}/oauth/token",
                data={
                    "grant_type": "authorization_code",
                    "client_id": self.auth.client_id,
                    "client_secret": self.auth.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
            )
            access_token = (
                token_response.json().get("access_token")
                if token_response.status_code == status.HTTP_200_OK
                else None
            )
            if not access_token:
                logger.warning("Auth0 token exchange failed", status_code=token_response.status_code)
                raise StudioError("Token exchange failed")

            userinfo_response = await client.get(
                f"{base}/userinfo",
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if userinfo_response.status_code != status.HTTP_200_OK:
                raise StudioError("Failed to fetch user info")

        return access_token, userinfo_response.json()


def get_auth0_client() -> Auth0Client:
    """FastAPI dependency; raises when the tenant isn't configured."""
    return Auth0Client(get_settings().auth)


@router.get("/login", status_code=status.HTTP_302_FOUND)
async def login(
    request: Request,
    returnTo: str | None = None,
    auth0: Auth0Client = Depends(get_auth0_client),
) -> RedirectResponse:
    return_to = allowed_return_to(returnTo or auth0.auth.default_return_to, get_settings())
    return RedirectResponse(
        url=auth0.authorize_url(_callback_url(request), return_to),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/callback", status_code=status.HTTP_302_FOUND)
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    auth0: Auth0Client = Depends(get_auth0_client),
) -> RedirectResponse:
    """Finish login: verify state, exchange the code and set the session cookie."""
    if not code or not state:
        raise ValidationError("Missing code or state")

    auth = auth0.auth
    payload = parse_state(state, auth.session_secret)
    return_to = allowed_return_to(payload["returnTo"], get_settings())
    access_token, user_info = await auth0.exchange(code, _callback_url(request))

    session_id = await session_store.create_session(
        SessionData(
            user_info=user_info,
            access_token=access_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=auth.session_ttl_seconds),
        )
    )

    response = RedirectResponse(url=return_to, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        auth.session_cookie_name,
        session_id,
        httponly=True,
        secure=True,
        samesite="none",
        max_age=auth.session_ttl_seconds,
        path="/",
    )
    logger.info(
        "Login completed",
        owner_id=user_info.get("sub"),
        active_sessions=len(session_store),
    )
    return response


@router.post("/logout")
async def logout(request: Request) -> JSONResponse:
    cookie_name = get_settings().auth.session_cookie_name
    session_id = request.cookies.get(cookie_name)
    if not session_id or not await session_store.get_session(session_id):
        raise AuthError("Not authenticated")

    await session_store.delete_session(session_id)
    response = JSONResponse({"success": True})
    response.delete_cookie(cookie_name, path="/")
    return response


@router.get("/session", response_model=SessionResponse)
async def get_session_status(request: Request) -> SessionResponse:
    """Report the current session without ever answering 401."""
    session_id = request.cookies.get(get_settings().auth.session_cookie_name)
    session_data = await session_store.get_session(session_id) if session_id else None
    if not session_data:
        return SessionResponse(isAuthenticated=False)

    user_info = session_data.user_info
    return SessionResponse(
        user={
            "id": user_info.get("sub", ""),
            "email": user_info.get("email", ""),
            "name": user_info.get("name", ""),
            "picture": user_info.get("picture"),
        },
        isAuthenticated=True,
    )
