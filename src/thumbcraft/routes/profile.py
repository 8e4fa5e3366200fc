"""Quota and spend of the signed-in user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.config import get_settings
from thumbcraft_shared.db import get_session

from ..dependencies import AuthenticatedUser, get_or_create_profile, require_auth
from ..models.thumbnail import ProfileResponse

router = APIRouter(prefix="/api", tags=["Profile"])


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get Profile",
    description="Remaining thumbnail credits and cumulative usage",
)
async def get_profile(
    user: AuthenticatedUser = Depends(require_auth),
    session: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    profile = await get_or_create_profile(
        session,
        user.sub,
        get_settings().generation.default_quota,
        email=user.email,
    )
    await session.commit()
    return ProfileResponse.model_validate(profile)
