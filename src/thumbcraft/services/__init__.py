"""Request orchestration services."""

from .concept_service import ConceptBatch, ConceptService, build_concept_prompt, parse_concepts
from .gallery_service import DownloadedImage, GalleryService
from .outcomes import BatchOutcome, ItemResult
from .thumbnail_service import GenerationResult, ThumbnailService, build_thumbnail_prompt
from .upload_service import IncomingFile, UploadResult, UploadService
from .validation import (
    ALLOWED_MIME_TYPES,
    FileCandidate,
    ValidationResult,
    validate_batch_upload,
    validate_image_file,
)

__all__ = [
    "ALLOWED_MIME_TYPES",
    "BatchOutcome",
    "ConceptBatch",
    "ConceptService",
    "DownloadedImage",
    "FileCandidate",
    "GalleryService",
    "GenerationResult",
    "IncomingFile",
    "ItemResult",
    "ThumbnailService",
    "UploadResult",
    "UploadService",
    "ValidationResult",
    "build_concept_prompt",
    "build_thumbnail_prompt",
    "parse_concepts",
    "validate_batch_upload",
    "validate_image_file",
]
