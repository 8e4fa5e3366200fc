"""Append-only audit trail of billable actions."""

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, generate_uuid


class UsageLog(Base, CreatedAtMixin):
    """One row per billable batch (upload, concepts, thumbnails)."""

    __tablename__ = "UsageLogs"

    usage_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="'image_upload', 'concept_generation' or 'thumbnail_generation'",
    )
    api_cost: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        default=dict,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_usage_logs_owner_created", "owner_id", "created_at"),
    )
