"""Thumbnail concept written by the text model."""

from uuid import UUID

from sqlalchemy import Index, Integer, String, Unicode, UnicodeText
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, generate_uuid


class Concept(Base, CreatedAtMixin):
    """One emotion-driven creative brief. Immutable once inserted."""

    __tablename__ = "ThumbnailConcepts"

    concept_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    video_title: Mapped[str] = mapped_column(Unicode(500), nullable=False)
    concept_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1-based position within its generation batch",
    )
    name_ar: Mapped[str] = mapped_column(Unicode(255), nullable=False)
    name_en: Mapped[str] = mapped_column(Unicode(255), nullable=False)
    emotion: Mapped[str] = mapped_column(Unicode(100), nullable=False)
    expression: Mapped[str] = mapped_column(UnicodeText, nullable=False)
    pose: Mapped[str] = mapped_column(UnicodeText, nullable=False)
    scene: Mapped[str] = mapped_column(UnicodeText, nullable=False)
    background: Mapped[str] = mapped_column(UnicodeText, nullable=False)
    arabic_text: Mapped[str] = mapped_column(Unicode(255), nullable=False)
    text_position: Mapped[str] = mapped_column(Unicode(100), nullable=False)
    text_style: Mapped[str] = mapped_column(Unicode(255), nullable=False)
    why_it_works: Mapped[str] = mapped_column(UnicodeText, nullable=False)
    session_id: Mapped[UUID] = mapped_column(
        nullable=False,
        comment="Shared by every concept produced by one generation request",
    )

    __table_args__ = (
        Index("ix_concepts_owner_created", "owner_id", "created_at"),
        Index("ix_concepts_session", "session_id"),
    )
