"""Generated thumbnail image record."""

from uuid import UUID

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, CreatedAtMixin, generate_uuid
from .concept import Concept


class GeneratedThumbnail(Base, CreatedAtMixin):
    """A rendered thumbnail, one row per successful image generation."""

    __tablename__ = "GeneratedThumbnails"

    thumbnail_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    concept_id: Mapped[UUID] = mapped_column(
        ForeignKey("ThumbnailConcepts.concept_id"),
        nullable=False,
    )
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    public_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    quality_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Quality mode: 'fast' or 'hd'",
    )
    model_used: Mapped[str] = mapped_column(String(100), nullable=False)
    generation_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    api_cost: Mapped[float] = mapped_column(Float, nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_favorited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    concept: Mapped[Concept] = relationship(lazy="raise")

    __table_args__ = (
        Index("ix_thumbnails_owner_created", "owner_id", "created_at"),
    )
