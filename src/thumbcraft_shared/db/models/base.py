"""SQLAlchemy Base model and common utilities."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.mssql import UNIQUEIDENTIFIER
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map = {
        UUID: UNIQUEIDENTIFIER,
    }


class CreatedAtMixin:
    """Mixin for an insert-time timestamp.

    SQL-side defaults are fetched back on flush so rows serialize without
    a lazy reload.
    """

    __mapper_args__ = {"eager_defaults": True}

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.sysutcdatetime(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin for created_at and updated_at timestamps."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.sysutcdatetime(),
        onupdate=func.sysutcdatetime(),
        nullable=False,
    )


def generate_uuid() -> UUID:
    """Generate a new UUID."""
    return uuid4()
