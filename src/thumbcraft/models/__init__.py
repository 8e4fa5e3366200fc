"""API request and response models."""

from .base import BaseResponse, ErrorResponse
from .concept import (
    ConceptDraft,
    ConceptListResponse,
    ConceptResponse,
    GenerateConceptsRequest,
    GenerateConceptsResponse,
)
from .thumbnail import (
    FavoriteUpdate,
    GalleryItem,
    GalleryResponse,
    GenerateThumbnailsRequest,
    GenerateThumbnailsResponse,
    ProfileResponse,
    QualityMode,
    ThumbnailResponse,
)
from .upload import (
    ReferenceImageListResponse,
    ReferenceImageResponse,
    RegisterUploadsRequest,
    SelectionUpdate,
    UploadReference,
    UploadResponse,
)

__all__ = [
    "BaseResponse",
    "ConceptDraft",
    "ConceptListResponse",
    "ConceptResponse",
    "ErrorResponse",
    "FavoriteUpdate",
    "GalleryItem",
    "GalleryResponse",
    "GenerateConceptsRequest",
    "GenerateConceptsResponse",
    "GenerateThumbnailsRequest",
    "GenerateThumbnailsResponse",
    "ProfileResponse",
    "QualityMode",
    "ReferenceImageListResponse",
    "ReferenceImageResponse",
    "RegisterUploadsRequest",
    "SelectionUpdate",
    "ThumbnailResponse",
    "UploadReference",
    "UploadResponse",
]
