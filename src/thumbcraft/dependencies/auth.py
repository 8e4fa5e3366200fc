"""Authentication dependency for protecting API routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request

from thumbcraft_shared.config import get_settings

from ..errors import AuthError
from ..routes.auth import session_store


@dataclass
class AuthenticatedUser:
    """Represents an authenticated user extracted from session."""

    sub: str  # identity provider user id, used as owner_id on every row
    email: str | None
    name: str | None
    raw: dict[str, Any]


async def require_auth(request: Request) -> AuthenticatedUser:
    """FastAPI dependency that requires a valid authenticated session.

    Usage:
        @router.post("/endpoint")
        async def my_endpoint(user: AuthenticatedUser = Depends(require_auth)):
            print(user.sub)

    Raises:
        AuthError: If no valid session exists.
    """
    session_id = request.cookies.get(get_settings().auth.session_cookie_name)
    if not session_id:
        raise AuthError("Unauthorized")

    session_data = await session_store.get_session(session_id)
    if not session_data or not session_data.user_info.get("sub"):
        raise AuthError("Unauthorized")

    user_info = session_data.user_info
    return AuthenticatedUser(
        sub=user_info["sub"],
        email=user_info.get("email"),
        name=user_info.get("name"),
        raw=user_info,
    )
