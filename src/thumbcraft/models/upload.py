"""Reference photo upload models."""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .base import BaseResponse


class UploadReference(BaseModel):
    """A photo the client already placed in object storage."""

    model_config = ConfigDict(populate_by_name=True)

    storage_path: str = Field(alias="storagePath", min_length=1)
    public_url: str = Field(alias="publicUrl", min_length=1)
    file_size: int = Field(alias="fileSize", ge=0)
    mime_type: str = Field(alias="mimeType", min_length=1)


class RegisterUploadsRequest(BaseModel):
    """JSON form of ``POST /api/upload``."""

    uploads: list[UploadReference]


class ReferenceImageResponse(BaseResponse):
    """Stored reference photo."""

    id: UUID = Field(validation_alias=AliasChoices("image_id", "id"))
    storage_path: str
    public_url: str
    file_size: int
    mime_type: str
    quality_score: float
    analysis_notes: str | None = None
    is_selected: bool
    created_at: datetime | None = None


class UploadResponse(BaseModel):
    success: bool = True
    uploaded: int
    selected: int
    images: list[ReferenceImageResponse]


class ReferenceImageListResponse(BaseModel):
    success: bool = True
    images: list[ReferenceImageResponse]


class SelectionUpdate(BaseModel):
    selected: bool
