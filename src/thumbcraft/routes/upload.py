"""Reference photo upload routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from thumbcraft_shared.blob import BlobClient, get_blob_client
from thumbcraft_shared.db import get_session
from thumbcraft_shared.genai import GenAIClient, GenAIConfigurationError, get_genai_client
from thumbcraft_shared.logging import get_logger

from ..dependencies import AuthenticatedUser, require_auth
from ..errors import ValidationError
from ..models.upload import (
    ReferenceImageListResponse,
    ReferenceImageResponse,
    RegisterUploadsRequest,
    SelectionUpdate,
    UploadResponse,
)
from ..services.upload_service import IncomingFile, UploadResult, UploadService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/upload", tags=["Upload"])


def get_optional_genai_client() -> GenAIClient | None:
    """Quality scoring is optional; uploads still work without an API key."""
    try:
        return get_genai_client()
    except GenAIConfigurationError as e:
        logger.warning("Quality analysis unavailable", error=str(e))
        return None


def get_upload_service(
    session: AsyncSession = Depends(get_session),
    blob_client: BlobClient = Depends(get_blob_client),
    genai: GenAIClient | None = Depends(get_optional_genai_client),
) -> UploadService:
    """Dependency to get upload service."""
    return UploadService(session, blob_client, genai)


def _to_response(result: UploadResult) -> UploadResponse:
    return UploadResponse(
        uploaded=result.uploaded,
        selected=result.selected,
        images=[ReferenceImageResponse.model_validate(image) for image in result.images],
    )


async def _read_files(request: Request) -> list[IncomingFile]:
    form = await request.form()
    files = []
    for item in form.getlist("images"):
        if not isinstance(item, UploadFile):
            raise ValidationError("Each 'images' entry must be a file")
        files.append(
            IncomingFile(
                filename=item.filename or "image",
                content_type=item.content_type or "application/octet-stream",
                data=await item.read(),
            )
        )
    return files


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload Reference Photos",
    description="Upload 3-5 photos as multipart 'images', or register pre-uploaded storage paths as JSON",
)
async def upload_images(
    request: Request,
    user: AuthenticatedUser = Depends(require_auth),
    service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        files = await _read_files(request)
        result = await service.upload_files(user.sub, files)
        return _to_response(result)

    try:
        payload = RegisterUploadsRequest.model_validate(await request.json())
    except ValueError as e:
        raise ValidationError("Expected multipart 'images' or a JSON 'uploads' list") from e

    result = await service.register_uploads(user.sub, payload.uploads)
    return _to_response(result)


@router.get(
    "/images",
    response_model=ReferenceImageListResponse,
    summary="List Reference Photos",
)
async def list_images(
    user: AuthenticatedUser = Depends(require_auth),
    service: UploadService = Depends(get_upload_service),
) -> ReferenceImageListResponse:
    images = await service.list_images(user.sub)
    return ReferenceImageListResponse(
        images=[ReferenceImageResponse.model_validate(image) for image in images]
    )


@router.patch(
    "/images/{image_id}",
    response_model=ReferenceImageResponse,
    summary="Select or Deselect a Reference Photo",
)
async def update_selection(
    image_id: UUID,
    body: SelectionUpdate,
    user: AuthenticatedUser = Depends(require_auth),
    service: UploadService = Depends(get_upload_service),
) -> ReferenceImageResponse:
    image = await service.set_selected(user.sub, image_id, body.selected)
    return ReferenceImageResponse.model_validate(image)
