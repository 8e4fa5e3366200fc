"""Upload validation: MIME type allow-list, per-file size and batch ceiling.

Limits come from settings on every call so configuration changes apply
without re-importing this module.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from thumbcraft_shared.config import get_settings

ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


@dataclass(frozen=True)
class FileCandidate:
    """Declared type and size of a file awaiting validation."""

    mime_type: str
    size: int


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def validate_image_file(mime_type: str, size: int) -> ValidationResult:
    """Check one file's MIME type and size."""
    if mime_type not in ALLOWED_MIME_TYPES:
        return ValidationResult(
            valid=False,
            error=f"Invalid file type. Allowed: {', '.join(ALLOWED_MIME_TYPES)}",
        )

    upload = get_settings().upload
    if size > upload.max_upload_size_bytes:
        return ValidationResult(
            valid=False,
            error=f"File too large. Maximum size: {upload.max_upload_size_mb}MB",
        )

    return ValidationResult(valid=True)


def validate_batch_upload(files: Sequence[FileCandidate]) -> ValidationResult:
    """Check the batch count, then every file, stopping at the first violation."""
    max_images = get_settings().upload.max_images_per_user
    if len(files) > max_images:
        return ValidationResult(
            valid=False,
            error=f"Too many files. Maximum: {max_images} images",
        )

    for candidate in files:
        result = validate_image_file(candidate.mime_type, candidate.size)
        if not result.valid:
            return result

    return ValidationResult(valid=True)
