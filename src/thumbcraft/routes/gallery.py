"""Gallery and download routes."""

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.db import get_session

from ..dependencies import AuthenticatedUser, require_auth
from ..models.thumbnail import FavoriteUpdate, GalleryItem, GalleryResponse, ThumbnailResponse
from ..services.gallery_service import GalleryService

router = APIRouter(prefix="/api/gallery", tags=["Gallery"])


def get_gallery_service(session: AsyncSession = Depends(get_session)) -> GalleryService:
    """Dependency to get gallery service."""
    return GalleryService(session)


@router.get(
    "",
    response_model=GalleryResponse,
    summary="List Thumbnails",
    description="All generated thumbnails of the caller, newest first",
)
async def list_gallery(
    user: AuthenticatedUser = Depends(require_auth),
    service: GalleryService = Depends(get_gallery_service),
) -> GalleryResponse:
    thumbnails = await service.list_thumbnails(user.sub)
    return GalleryResponse(thumbnails=[GalleryItem.model_validate(t) for t in thumbnails])


@router.get(
    "/download/{thumbnail_id}",
    summary="Download Thumbnail",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def download_thumbnail(
    thumbnail_id: str,
    user: AuthenticatedUser = Depends(require_auth),
    service: GalleryService = Depends(get_gallery_service),
) -> Response:
    """Stream the stored image as an attachment and count the download."""
    image = await service.download(user.sub, thumbnail_id)
    return Response(
        content=image.content,
        media_type=image.media_type,
        headers={"Content-Disposition": f'attachment; filename="{image.filename}"'},
    )


@router.patch(
    "/{thumbnail_id}/favorite",
    response_model=ThumbnailResponse,
    summary="Favorite or Unfavorite a Thumbnail",
)
async def update_favorite(
    thumbnail_id: UUID,
    body: FavoriteUpdate,
    user: AuthenticatedUser = Depends(require_auth),
    service: GalleryService = Depends(get_gallery_service),
) -> ThumbnailResponse:
    thumbnail = await service.set_favorite(user.sub, thumbnail_id, body.favorite)
    return ThumbnailResponse.model_validate(thumbnail)
