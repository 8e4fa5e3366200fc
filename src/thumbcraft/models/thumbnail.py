"""Thumbnail generation, gallery and profile models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .base import BaseResponse

QualityMode = Literal["fast", "hd"]


class GenerateThumbnailsRequest(BaseModel):
    """Either a quality mode (quota-gated batch) or an explicit concept selection."""

    model_config = ConfigDict(populate_by_name=True)

    quality_mode: QualityMode | None = Field(default=None, alias="qualityMode")
    concept_ids: list[UUID] | None = Field(default=None, alias="conceptIds")

    @model_validator(mode="after")
    def _require_mode_or_selection(self) -> "GenerateThumbnailsRequest":
        if self.quality_mode is None and not self.concept_ids:
            raise ValueError("Provide qualityMode or a non-empty conceptIds list")
        return self


class ThumbnailResponse(BaseResponse):
    id: UUID = Field(validation_alias=AliasChoices("thumbnail_id", "id"))
    concept_id: UUID
    storage_path: str
    public_url: str
    file_size: int
    quality_mode: str
    model_used: str
    generation_time_ms: int
    api_cost: float
    download_count: int
    is_favorited: bool
    created_at: datetime | None = None


class GenerateThumbnailsResponse(BaseModel):
    success: bool = True
    generated: int
    thumbnails: list[ThumbnailResponse]
    quota_remaining: int | None = None


class ConceptSummary(BaseResponse):
    """Display fields of the concept a thumbnail was rendered from."""

    name_ar: str
    name_en: str
    emotion: str
    expression: str


class GalleryItem(ThumbnailResponse):
    concept: ConceptSummary | None = None


class GalleryResponse(BaseModel):
    success: bool = True
    thumbnails: list[GalleryItem]


class FavoriteUpdate(BaseModel):
    favorite: bool


class ProfileResponse(BaseResponse):
    quota_remaining: int
    total_generated: int
    api_cost_total: float
