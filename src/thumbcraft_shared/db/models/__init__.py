"""SQLAlchemy database models for thumbcraft."""

from .base import Base, CreatedAtMixin, TimestampMixin, generate_uuid
from .concept import Concept
from .generated_thumbnail import GeneratedThumbnail
from .reference_image import ReferenceImage
from .usage_log import UsageLog
from .user_profile import UserProfile

__all__ = [
    "Base",
    "Concept",
    "CreatedAtMixin",
    "GeneratedThumbnail",
    "ReferenceImage",
    "TimestampMixin",
    "UsageLog",
    "UserProfile",
    "generate_uuid",
]
