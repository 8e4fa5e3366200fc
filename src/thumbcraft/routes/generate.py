"""Thumbnail generation route."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.blob import BlobClient, get_blob_client
from thumbcraft_shared.db import get_session
from thumbcraft_shared.genai import GenAIClient, get_genai_client

from ..dependencies import AuthenticatedUser, require_auth
from ..models.thumbnail import (
    GenerateThumbnailsRequest,
    GenerateThumbnailsResponse,
    ThumbnailResponse,
)
from ..services.thumbnail_service import ThumbnailService

router = APIRouter(prefix="/api", tags=["Generate"])


def get_thumbnail_service(
    session: AsyncSession = Depends(get_session),
    genai: GenAIClient = Depends(get_genai_client),
    blob_client: BlobClient = Depends(get_blob_client),
) -> ThumbnailService:
    """Dependency to get thumbnail service."""
    return ThumbnailService(session, genai, blob_client)


@router.post(
    "/generate",
    response_model=GenerateThumbnailsResponse,
    response_model_exclude_none=True,
    summary="Generate Thumbnails",
    description=(
        "Render thumbnails for the most recent concepts (qualityMode) "
        "or for an explicit list of concept ids (conceptIds)"
    ),
)
async def generate_thumbnails(
    body: GenerateThumbnailsRequest,
    user: AuthenticatedUser = Depends(require_auth),
    service: ThumbnailService = Depends(get_thumbnail_service),
) -> GenerateThumbnailsResponse:
    """Generate thumbnails one concept at a time.

    A batch where some concepts failed still succeeds; ``generated``
    counts only the thumbnails that were produced.
    """
    if body.concept_ids:
        result = await service.generate_for_concepts(
            user.sub,
            body.concept_ids,
            body.quality_mode or "fast",
            email=user.email,
        )
    else:
        result = await service.generate_by_quality(user.sub, body.quality_mode, email=user.email)

    return GenerateThumbnailsResponse(
        generated=result.generated,
        thumbnails=[ThumbnailResponse.model_validate(t) for t in result.thumbnails],
        quota_remaining=result.quota_remaining,
    )
