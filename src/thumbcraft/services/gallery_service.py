"""Gallery listing, favorites and downloads of generated thumbnails."""

from dataclasses import dataclass
from uuid import UUID

import httpx
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from thumbcraft_shared.db.models import GeneratedThumbnail
from thumbcraft_shared.logging import get_logger

from ..errors import NotFoundError, StudioError

logger = get_logger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 30.0


@dataclass
class DownloadedImage:
    content: bytes
    media_type: str
    filename: str


class GalleryService:
    """Read access to the caller's thumbnails."""

    def __init__(
        self,
        session: AsyncSession,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self._transport = transport

    async def list_thumbnails(self, owner_id: str) -> list[GeneratedThumbnail]:
        """All of the caller's thumbnails, newest first, with concept display fields."""
        result = await self.session.execute(
            select(GeneratedThumbnail)
            .options(selectinload(GeneratedThumbnail.concept))
            .where(GeneratedThumbnail.owner_id == owner_id)
            .order_by(GeneratedThumbnail.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_thumbnail(self, owner_id: str, thumbnail_id: UUID | str) -> GeneratedThumbnail:
        """Look up one thumbnail owned by the caller.

        Raises:
            NotFoundError: If the id is malformed, unknown, or another user's.
        """
        if not isinstance(thumbnail_id, UUID):
            try:
                thumbnail_id = UUID(str(thumbnail_id))
            except ValueError:
                raise NotFoundError("Thumbnail not found") from None

        result = await self.session.execute(
            select(GeneratedThumbnail).where(
                GeneratedThumbnail.thumbnail_id == thumbnail_id,
                GeneratedThumbnail.owner_id == owner_id,
            )
        )
        thumbnail = result.scalar_one_or_none()
        if not thumbnail:
            raise NotFoundError("Thumbnail not found")
        return thumbnail

    async def _count_download(self, thumbnail: GeneratedThumbnail) -> None:
        # The counter is best-effort; a failed increment never blocks the download.
        try:
            await self.session.execute(
                update(GeneratedThumbnail)
                .where(GeneratedThumbnail.thumbnail_id == thumbnail.thumbnail_id)
                .values(download_count=GeneratedThumbnail.download_count + 1)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.warning(
                "Failed to increment download count",
                thumbnail_id=str(thumbnail.thumbnail_id),
                error=str(e),
            )
            await self.session.rollback()

    async def download(self, owner_id: str, thumbnail_id: UUID | str) -> DownloadedImage:
        """Count the download and fetch the stored image bytes.

        Raises:
            NotFoundError: If the thumbnail isn't the caller's.
            StudioError: If the stored image can't be fetched.
        """
        thumbnail = await self.get_thumbnail(owner_id, thumbnail_id)
        # Capture before the counter commit so nothing reloads from the database.
        public_url = thumbnail.public_url
        filename = f"thumbnail-{thumbnail.thumbnail_id}.png"

        await self._count_download(thumbnail)

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=DOWNLOAD_TIMEOUT_SECONDS,
                follow_redirects=True,
            ) as client:
                response = await client.get(public_url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to fetch thumbnail", url=public_url, error=str(e))
            raise StudioError("Download failed") from e

        logger.info("Served thumbnail download", owner_id=owner_id, thumbnail_id=str(thumbnail_id))
        return DownloadedImage(
            content=response.content,
            media_type="image/png",
            filename=filename,
        )

    async def set_favorite(
        self, owner_id: str, thumbnail_id: UUID | str, favorite: bool
    ) -> GeneratedThumbnail:
        thumbnail = await self.get_thumbnail(owner_id, thumbnail_id)
        thumbnail.is_favorited = favorite
        await self.session.commit()
        return thumbnail
