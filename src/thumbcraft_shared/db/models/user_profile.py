"""Per-user quota and cumulative spend."""

from uuid import UUID

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, generate_uuid


class UserProfile(Base, TimestampMixin):
    """Credit balance gating paid thumbnail generation."""

    __tablename__ = "UserProfiles"

    profile_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quota_remaining: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Thumbnail credits left; never negative",
    )
    total_generated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    api_cost_total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
