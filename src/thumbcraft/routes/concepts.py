"""Concept generation routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.db import get_session
from thumbcraft_shared.genai import GenAIClient, get_genai_client

from ..dependencies import AuthenticatedUser, require_auth
from ..models.concept import (
    ConceptListResponse,
    ConceptResponse,
    GenerateConceptsRequest,
    GenerateConceptsResponse,
)
from ..services.concept_service import ConceptService

router = APIRouter(prefix="/api/concepts", tags=["Concepts"])


def get_concept_service(
    session: AsyncSession = Depends(get_session),
    genai: GenAIClient = Depends(get_genai_client),
) -> ConceptService:
    """Dependency to get concept service."""
    return ConceptService(session, genai)


def get_concept_reader(session: AsyncSession = Depends(get_session)) -> ConceptService:
    """Concept service for read-only routes, which never call the model."""
    return ConceptService(session, genai=None)


@router.post(
    "/generate",
    response_model=GenerateConceptsResponse,
    summary="Generate Concepts",
    description="Write up to 10 emotion-driven thumbnail concepts for a video title",
)
async def generate_concepts(
    body: GenerateConceptsRequest,
    user: AuthenticatedUser = Depends(require_auth),
    service: ConceptService = Depends(get_concept_service),
) -> GenerateConceptsResponse:
    """Generate and persist one batch of concepts.

    The returned ids, not list positions, are what later generation
    requests must reference.
    """
    batch = await service.generate_concepts(user.sub, body.video_title)
    return GenerateConceptsResponse(
        concepts=[ConceptResponse.model_validate(concept) for concept in batch.concepts],
        session_id=batch.session_id,
    )


@router.get(
    "",
    response_model=ConceptListResponse,
    summary="List Concepts",
)
async def list_concepts(
    user: AuthenticatedUser = Depends(require_auth),
    session_id: UUID | None = Query(default=None, description="Only concepts from this batch"),
    service: ConceptService = Depends(get_concept_reader),
) -> ConceptListResponse:
    concepts = await service.list_concepts(user.sub, session_id)
    return ConceptListResponse(
        concepts=[ConceptResponse.model_validate(concept) for concept in concepts]
    )
