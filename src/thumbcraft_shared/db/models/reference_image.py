"""Reference photo uploaded by a user for thumbnail generation."""

from uuid import UUID

from sqlalchemy import Boolean, Float, Index, Integer, String, UnicodeText
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, generate_uuid


class ReferenceImage(Base, CreatedAtMixin):
    """Uploaded reference photo with its quality score and selection flag."""

    __tablename__ = "ReferenceImages"

    image_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identity provider 'sub' of the uploader",
    )
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    public_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    quality_score: Mapped[float] = mapped_column(
        Float,
        default=0.5,
        nullable=False,
        comment="Vision-model quality score in [0.0, 1.0]",
    )
    analysis_notes: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    is_selected: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Used as a reference when rendering thumbnails",
    )

    __table_args__ = (
        Index("ix_reference_images_owner_selected", "owner_id", "is_selected", "quality_score"),
    )
