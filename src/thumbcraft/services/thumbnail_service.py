"""Thumbnail rendering with quota and cost accounting."""

import time
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.blob import BlobClient, thumbnail_path
from thumbcraft_shared.config import Settings, get_settings
from thumbcraft_shared.db.models import Concept, GeneratedThumbnail, ReferenceImage, UserProfile
from thumbcraft_shared.genai import GenAIClient, ReferencePhoto
from thumbcraft_shared.logging import LogContext, get_logger

from ..dependencies.profile import (
    ACTION_THUMBNAIL_GENERATION,
    get_or_create_profile,
    record_usage,
)
from ..errors import QuotaExhaustedError, TotalBatchFailure, ValidationError
from .outcomes import BatchOutcome

logger = get_logger(__name__)

THUMBNAIL_PROMPT_TEMPLATE = """Create a high-converting YouTube thumbnail (16:9) featuring the person from the reference photos.

Keep the person's face and identity exactly as in the reference photos.
Emotion: {emotion}
Facial expression: {expression}
Pose: {pose}
Scene: {scene}
Background: {background}

Overlay the Arabic text "{arabic_text}" at the {text_position} of the frame, styled {text_style}.
Render the Arabic text right-to-left with correct letter joining.
High contrast, vivid colors, sharp focus on the face."""


def build_thumbnail_prompt(concept: Concept) -> str:
    """Fill the image prompt from a concept's visual and overlay fields."""
    return THUMBNAIL_PROMPT_TEMPLATE.format(
        emotion=concept.emotion,
        expression=concept.expression,
        pose=concept.pose,
        scene=concept.scene,
        background=concept.background,
        arabic_text=concept.arabic_text,
        text_position=concept.text_position,
        text_style=concept.text_style,
    )


@dataclass
class GenerationResult:
    thumbnails: list[GeneratedThumbnail]
    outcome: BatchOutcome[GeneratedThumbnail]
    quota_remaining: int | None = None

    @property
    def generated(self) -> int:
        return len(self.thumbnails)


class ThumbnailService:
    """Renders one thumbnail per concept, tolerating per-concept failures."""

    def __init__(
        self,
        session: AsyncSession,
        genai: GenAIClient,
        blob_client: BlobClient,
        settings: Settings | None = None,
    ):
        self.session = session
        self.genai = genai
        self.blob_client = blob_client
        self.settings = settings or get_settings()

    async def _load_quota_profile(self, owner_id: str, email: str | None) -> UserProfile:
        profile = await get_or_create_profile(
            self.session,
            owner_id,
            self.settings.generation.default_quota,
            email=email,
        )
        if profile.quota_remaining <= 0:
            raise QuotaExhaustedError("Quota exhausted. Please upgrade your plan.")
        await self.session.commit()
        return profile

    async def _selected_images(self, owner_id: str) -> list[ReferenceImage]:
        result = await self.session.execute(
            select(ReferenceImage)
            .where(ReferenceImage.owner_id == owner_id, ReferenceImage.is_selected.is_(True))
            .order_by(ReferenceImage.quality_score.desc())
            .limit(self.settings.generation.max_reference_images)
        )
        images = list(result.scalars().all())
        if not images:
            raise ValidationError("No selected reference images. Please upload images first.")
        return images

    async def generate_by_quality(
        self,
        owner_id: str,
        quality_mode: str,
        email: str | None = None,
    ) -> GenerationResult:
        """Render the caller's most recent concepts, spending one credit per image.

        Raises:
            QuotaExhaustedError: If the caller has no credits left.
            ValidationError: If there are no selected photos or no concepts.
            TotalBatchFailure: If no concept produced an image.
        """
        profile = await self._load_quota_profile(owner_id, email)
        images = await self._selected_images(owner_id)

        result = await self.session.execute(
            select(Concept)
            .where(Concept.owner_id == owner_id)
            .order_by(Concept.created_at.desc(), Concept.concept_number.asc())
            .limit(self.settings.generation.max_concepts)
        )
        concepts = list(result.scalars().all())
        if not concepts:
            raise ValidationError("No concepts found. Please generate concepts first.")

        concepts = concepts[: min(len(concepts), profile.quota_remaining)]
        return await self._render_batch(owner_id, concepts, images, quality_mode, profile)

    async def generate_for_concepts(
        self,
        owner_id: str,
        concept_ids: Sequence[UUID],
        quality_mode: str = "fast",
        email: str | None = None,
    ) -> GenerationResult:
        """Render exactly the chosen concepts, in the order given.

        Quota is only checked and spent when
        ``GENERATION_ENFORCE_QUOTA_FOR_SELECTION`` is enabled.

        Raises:
            QuotaExhaustedError: If quota is enforced and exhausted.
            ValidationError: If no photos are selected or no id matches a
                concept owned by the caller.
            TotalBatchFailure: If no concept produced an image.
        """
        profile = None
        if self.settings.generation.enforce_quota_for_selection:
            profile = await self._load_quota_profile(owner_id, email)

        images = await self._selected_images(owner_id)

        wanted = list(dict.fromkeys(concept_ids))
        result = await self.session.execute(
            select(Concept).where(Concept.owner_id == owner_id, Concept.concept_id.in_(wanted))
        )
        by_id = {concept.concept_id: concept for concept in result.scalars().all()}
        concepts = [by_id[concept_id] for concept_id in wanted if concept_id in by_id]
        if not concepts:
            raise ValidationError("No concepts found for the given ids")
        if len(concepts) < len(wanted):
            logger.warning(
                "Ignoring unknown concept ids",
                owner_id=owner_id,
                requested=len(wanted),
                found=len(concepts),
            )

        if profile is not None:
            concepts = concepts[: profile.quota_remaining]
        return await self._render_batch(owner_id, concepts, images, quality_mode, profile)

    def _download_references(self, images: list[ReferenceImage]) -> list[ReferencePhoto]:
        container = self.settings.storage.reference_container
        references = []
        for image in images:
            try:
                data = self.blob_client.download_blob(container, image.storage_path)
            except Exception as e:
                logger.warning(
                    "Failed to load reference image, skipping",
                    image_id=str(image.image_id),
                    error=str(e),
                )
                continue
            filename = image.storage_path.rsplit("/", 1)[-1]
            references.append(ReferencePhoto(filename=filename, data=data, mime_type=image.mime_type))
        return references

    async def _render_one(
        self,
        owner_id: str,
        concept: Concept,
        references: list[ReferencePhoto],
        quality_mode: str,
    ) -> GeneratedThumbnail:
        """Render, store and stage one thumbnail row (not yet committed)."""
        generation = self.settings.generation
        started = time.perf_counter()
        data = await self.genai.generate_image(
            build_thumbnail_prompt(concept),
            references,
            quality=generation.quality_for(quality_mode),
            size=generation.image_size,
        )
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        storage_path = thumbnail_path(owner_id, concept.concept_id)
        public_url = self.blob_client.upload_blob(
            self.settings.storage.thumbnail_container,
            storage_path,
            data,
            content_type="image/png",
            overwrite=True,
        )

        return GeneratedThumbnail(
            owner_id=owner_id,
            concept_id=concept.concept_id,
            storage_path=storage_path,
            public_url=public_url,
            file_size=len(data),
            quality_mode=quality_mode,
            model_used=self.genai.image_model,
            generation_time_ms=elapsed_ms,
            api_cost=generation.cost_for(quality_mode),
            download_count=0,
            is_favorited=False,
        )

    def _discard_blob(self, storage_path: str) -> None:
        """Delete a rendered image whose row never reached the database."""
        try:
            self.blob_client.delete_blob(self.settings.storage.thumbnail_container, storage_path)
        except Exception as e:
            logger.warning(
                "Failed to delete orphaned thumbnail", storage_path=storage_path, error=str(e)
            )

    async def _rollback_batch(
        self, profile: UserProfile | None, committed: Sequence[GeneratedThumbnail]
    ) -> None:
        """Roll back the open transaction and reload what earlier commits stored."""
        await self.session.rollback()
        for obj in ([profile] if profile is not None else []) + list(committed):
            await self.session.refresh(obj)

    async def _render_batch(
        self,
        owner_id: str,
        concepts: list[Concept],
        images: list[ReferenceImage],
        quality_mode: str,
        profile: UserProfile | None,
    ) -> GenerationResult:
        references = self._download_references(images)
        if not references:
            raise TotalBatchFailure("Failed to load any reference image")

        cost = self.settings.generation.cost_for(quality_mode)
        outcome: BatchOutcome[GeneratedThumbnail] = BatchOutcome()

        with LogContext(owner_id=owner_id, quality_mode=quality_mode):
            for concept in concepts:
                key = str(concept.concept_id)
                try:
                    thumbnail = await self._render_one(owner_id, concept, references, quality_mode)
                except Exception as e:
                    logger.warning("Thumbnail generation failed, skipping", concept_id=key, error=str(e))
                    outcome.record_failure(key, str(e))
                    continue

                # A savepoint keeps earlier rows of the batch loaded if this insert fails.
                try:
                    async with self.session.begin_nested():
                        self.session.add(thumbnail)
                        await self.session.flush()
                except SQLAlchemyError as e:
                    logger.warning("Failed to persist thumbnail, skipping", concept_id=key, error=str(e))
                    self._discard_blob(thumbnail.storage_path)
                    outcome.record_failure(key, str(e))
                    continue

                if profile is not None:
                    profile.quota_remaining -= 1
                    profile.total_generated += 1
                    profile.api_cost_total += cost
                try:
                    await self.session.commit()
                except SQLAlchemyError as e:
                    logger.warning(
                        "Failed to commit thumbnail, skipping", concept_id=key, error=str(e)
                    )
                    await self._rollback_batch(profile, outcome.succeeded)
                    self._discard_blob(thumbnail.storage_path)
                    outcome.record_failure(key, str(e))
                    continue

                outcome.record_success(key, thumbnail)
                logger.info(
                    "Generated thumbnail",
                    concept_id=key,
                    generation_time_ms=thumbnail.generation_time_ms,
                )

                if profile is not None and profile.quota_remaining <= 0:
                    break

            thumbnails = outcome.succeeded
            if not thumbnails:
                raise TotalBatchFailure("Failed to generate any thumbnails")

            await record_usage(
                self.session,
                owner_id,
                ACTION_THUMBNAIL_GENERATION,
                cost * len(thumbnails),
                {
                    "quality_mode": quality_mode,
                    "requested": len(concepts),
                    "generated": len(thumbnails),
                    "failed_concept_ids": outcome.failed_keys,
                },
            )
            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                # Thumbnails and quota are already committed; only the usage row is lost.
                logger.error(
                    "Failed to record usage",
                    api_cost=cost * len(thumbnails),
                    thumbnail_ids=[str(t.thumbnail_id) for t in thumbnails],
                    error=str(e),
                )
                await self._rollback_batch(profile, thumbnails)
            logger.info(
                "Thumbnail batch finished",
                requested=len(concepts),
                generated=len(thumbnails),
            )

        return GenerationResult(
            thumbnails=thumbnails,
            outcome=outcome,
            quota_remaining=profile.quota_remaining if profile is not None else None,
        )
