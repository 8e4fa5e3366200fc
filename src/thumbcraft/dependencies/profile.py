"""User profile (quota) and usage log bookkeeping."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.db.models import UsageLog, UserProfile
from thumbcraft_shared.logging import get_logger

logger = get_logger(__name__)

ACTION_IMAGE_UPLOAD = "image_upload"
ACTION_CONCEPT_GENERATION = "concept_generation"
ACTION_THUMBNAIL_GENERATION = "thumbnail_generation"


async def get_or_create_profile(
    session: AsyncSession,
    owner_id: str,
    default_quota: int,
    email: str | None = None,
) -> UserProfile:
    """Find the caller's profile or create one holding the default quota."""
    result = await session.execute(select(UserProfile).where(UserProfile.owner_id == owner_id))
    profile = result.scalar_one_or_none()

    if not profile:
        profile = UserProfile(
            owner_id=owner_id,
            email=email,
            quota_remaining=default_quota,
            total_generated=0,
            api_cost_total=0.0,
        )
        session.add(profile)
        await session.flush()
        logger.info("Created user profile", owner_id=owner_id, quota=default_quota)

    return profile


async def record_usage(
    session: AsyncSession,
    owner_id: str,
    action_type: str,
    api_cost: float,
    details: dict[str, Any] | None = None,
) -> UsageLog:
    """Append one usage-log row for a billable batch."""
    entry = UsageLog(
        owner_id=owner_id,
        action_type=action_type,
        api_cost=round(api_cost, 4),
        details=details or {},
    )
    session.add(entry)
    await session.flush()
    logger.info("Recorded usage", owner_id=owner_id, action_type=action_type, api_cost=entry.api_cost)
    return entry
