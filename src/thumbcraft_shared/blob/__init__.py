"""Object storage for reference photos and thumbnails."""

from .client import (
    BlobClient,
    get_blob_client,
    reference_image_path,
    sanitize_filename,
    thumbnail_path,
)

__all__ = [
    "BlobClient",
    "get_blob_client",
    "reference_image_path",
    "sanitize_filename",
    "thumbnail_path",
]
