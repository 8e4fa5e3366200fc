"""Reference photo upload orchestration."""

import math
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.blob import BlobClient, reference_image_path
from thumbcraft_shared.config import Settings, get_settings
from thumbcraft_shared.db.models import ReferenceImage
from thumbcraft_shared.genai import GenAIClient, JsonObjectExtractor, StructuredResponseExtractor
from thumbcraft_shared.logging import get_logger

from ..dependencies.profile import ACTION_IMAGE_UPLOAD, record_usage
from ..errors import NotFoundError, TotalBatchFailure, ValidationError
from ..models.upload import UploadReference
from .outcomes import BatchOutcome
from .validation import FileCandidate, validate_batch_upload

logger = get_logger(__name__)

DEFAULT_QUALITY_SCORE = 0.5
ANALYSIS_FAILED_NOTE = "Quality analysis failed"
ANALYSIS_SKIPPED_NOTE = "Quality analysis skipped"
DIRECT_UPLOAD_NOTE = "Uploaded directly"

QUALITY_PROMPT = """You are rating a reference photo of a YouTube creator that will be used to generate video thumbnails.

Score the photo from 0.0 to 1.0 using these weights:
- Lighting and face clarity: 30%
- Expression visibility: 30%
- Sharpness: 20%
- Framing (face centered, not cropped): 20%

Respond with ONLY a JSON object in this exact format:
{"quality_score": 0.85, "notes": "one short sentence explaining the score"}"""


@dataclass
class IncomingFile:
    """Raw photo bytes submitted in a multipart upload."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadResult:
    images: list[ReferenceImage]
    attempted: int

    @property
    def uploaded(self) -> int:
        return len(self.images)

    @property
    def selected(self) -> int:
        return sum(1 for image in self.images if image.is_selected)


class UploadService:
    """Stores reference photos, scores them and records their metadata."""

    def __init__(
        self,
        session: AsyncSession,
        blob_client: BlobClient,
        genai: GenAIClient | None,
        settings: Settings | None = None,
        extractor: StructuredResponseExtractor | None = None,
    ):
        """Initialize the upload service.

        Args:
            session: Database session.
            blob_client: Object storage client.
            genai: Model client for quality scoring, or None when unavailable.
            settings: Application settings (defaults to the cached settings).
            extractor: Strategy for reading the score object out of model text.
        """
        self.session = session
        self.blob_client = blob_client
        self.genai = genai
        self.settings = settings or get_settings()
        self.extractor = extractor or JsonObjectExtractor()

    def _check_batch_size(self, count: int) -> None:
        low = self.settings.upload.min_batch_size
        high = self.settings.upload.max_batch_size
        if count < low or count > high:
            raise ValidationError(f"Please upload between {low}-{high} images")

    async def upload_files(self, owner_id: str, files: list[IncomingFile]) -> UploadResult:
        """Store raw photos, score them and persist one row per stored photo.

        A photo that fails to store is skipped; earlier photos stay stored.

        Raises:
            ValidationError: If the batch size or any file is out of bounds.
            TotalBatchFailure: If no photo could be stored.
        """
        self._check_batch_size(len(files))
        verdict = validate_batch_upload([FileCandidate(f.content_type, f.size) for f in files])
        if not verdict.valid:
            raise ValidationError(verdict.error or "Invalid upload")

        container = self.settings.storage.reference_container
        outcome: BatchOutcome[ReferenceImage] = BatchOutcome()
        analyzed = 0

        for index, incoming in enumerate(files):
            storage_path = reference_image_path(owner_id, index, incoming.filename)
            try:
                public_url = self.blob_client.upload_blob(
                    container,
                    storage_path,
                    incoming.data,
                    content_type=incoming.content_type,
                    overwrite=True,
                )
            except Exception as e:
                logger.warning(
                    "Failed to store reference image, skipping",
                    owner_id=owner_id,
                    filename=incoming.filename,
                    error=str(e),
                )
                outcome.record_failure(incoming.filename, str(e))
                continue

            if self.settings.upload.analyze_quality:
                score, notes, succeeded = await self.analyze_quality(incoming.data, incoming.content_type)
                analyzed += int(succeeded)
            else:
                score, notes = DEFAULT_QUALITY_SCORE, ANALYSIS_SKIPPED_NOTE

            image = ReferenceImage(
                owner_id=owner_id,
                storage_path=storage_path,
                public_url=public_url,
                file_size=incoming.size,
                mime_type=incoming.content_type,
                quality_score=score,
                analysis_notes=notes,
                is_selected=False,
            )
            self.session.add(image)
            outcome.record_success(incoming.filename, image)

        images = outcome.succeeded
        if not images:
            raise TotalBatchFailure("Failed to store any of the uploaded images")

        # Batches are capped small enough that every stored photo qualifies.
        for image in images:
            image.is_selected = True
        await self.session.flush()

        await record_usage(
            self.session,
            owner_id,
            ACTION_IMAGE_UPLOAD,
            self.settings.upload.analysis_cost * analyzed,
            {
                "attempted": outcome.attempted,
                "uploaded": len(images),
                "analyzed": analyzed,
                "source": "direct",
            },
        )
        await self.session.commit()

        logger.info(
            "Uploaded reference images",
            owner_id=owner_id,
            attempted=outcome.attempted,
            uploaded=len(images),
        )
        return UploadResult(images=images, attempted=outcome.attempted)

    async def register_uploads(
        self,
        owner_id: str,
        uploads: list[UploadReference],
    ) -> UploadResult:
        """Record photos the client already placed in object storage.

        Raises:
            ValidationError: If the batch size, a declared type/size, or a
                storage path outside the caller's folder is rejected.
        """
        self._check_batch_size(len(uploads))
        verdict = validate_batch_upload([FileCandidate(u.mime_type, u.file_size) for u in uploads])
        if not verdict.valid:
            raise ValidationError(verdict.error or "Invalid upload")

        owner_prefix = f"{owner_id}/"
        if any(not upload.storage_path.startswith(owner_prefix) for upload in uploads):
            raise ValidationError("Storage path must be inside your own folder")

        images = [
            ReferenceImage(
                owner_id=owner_id,
                storage_path=upload.storage_path,
                public_url=upload.public_url,
                file_size=upload.file_size,
                mime_type=upload.mime_type,
                quality_score=self.settings.upload.direct_upload_score,
                analysis_notes=DIRECT_UPLOAD_NOTE,
                is_selected=True,
            )
            for upload in uploads
        ]
        self.session.add_all(images)
        await self.session.flush()

        await record_usage(
            self.session,
            owner_id,
            ACTION_IMAGE_UPLOAD,
            0.0,
            {
                "attempted": len(uploads),
                "uploaded": len(images),
                "analyzed": 0,
                "source": "storage_reference",
            },
        )
        await self.session.commit()

        logger.info("Registered pre-uploaded images", owner_id=owner_id, uploaded=len(images))
        return UploadResult(images=images, attempted=len(uploads))

    async def analyze_quality(self, data: bytes, mime_type: str) -> tuple[float, str, bool]:
        """Score a photo with the vision model.

        Never raises: any failure yields the default score.

        Returns:
            (quality_score, notes, analysis_succeeded)
        """
        if self.genai is None:
            return DEFAULT_QUALITY_SCORE, ANALYSIS_FAILED_NOTE, False

        try:
            text = await self.genai.analyze_image(data, mime_type, QUALITY_PROMPT)
            payload = self.extractor.extract(text)
            score = float(payload["quality_score"])
            if not math.isfinite(score):
                raise ValueError(f"Non-finite quality score: {score}")
            notes = str(payload.get("notes") or "")
        except Exception as e:
            logger.warning("Quality analysis failed, using default score", error=str(e))
            return DEFAULT_QUALITY_SCORE, ANALYSIS_FAILED_NOTE, False

        return min(max(score, 0.0), 1.0), notes, True

    async def list_images(self, owner_id: str) -> list[ReferenceImage]:
        """The caller's reference photos, best quality first."""
        result = await self.session.execute(
            select(ReferenceImage)
            .where(ReferenceImage.owner_id == owner_id)
            .order_by(ReferenceImage.quality_score.desc(), ReferenceImage.created_at.desc())
        )
        return list(result.scalars().all())

    async def set_selected(self, owner_id: str, image_id: UUID, selected: bool) -> ReferenceImage:
        """Flip the selected flag of one of the caller's photos.

        Raises:
            NotFoundError: If the photo doesn't exist or isn't the caller's.
        """
        result = await self.session.execute(
            select(ReferenceImage).where(
                ReferenceImage.image_id == image_id,
                ReferenceImage.owner_id == owner_id,
            )
        )
        image = result.scalar_one_or_none()
        if not image:
            raise NotFoundError("Image not found")

        image.is_selected = selected
        await self.session.commit()
        return image
