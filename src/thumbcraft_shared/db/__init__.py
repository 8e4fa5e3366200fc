"""Shared database module."""

from .connection import (
    DatabaseConnection,
    create_engine,
    create_session_factory,
    get_database_url,
    get_db,
    get_session,
)
from .models import (
    Base,
    Concept,
    GeneratedThumbnail,
    ReferenceImage,
    UsageLog,
    UserProfile,
    generate_uuid,
)

__all__ = [
    "Base",
    "Concept",
    "DatabaseConnection",
    "GeneratedThumbnail",
    "ReferenceImage",
    "UsageLog",
    "UserProfile",
    "create_engine",
    "create_session_factory",
    "generate_uuid",
    "get_database_url",
    "get_db",
    "get_session",
]
