"""Initial schema - reference images, concepts, thumbnails, usage and profiles.

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.mssql import NVARCHAR, UNIQUEIDENTIFIER

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column(name: str) -> sa.Column:
    return sa.Column(
        name,
        UNIQUEIDENTIFIER(),
        primary_key=True,
        server_default=sa.text("NEWSEQUENTIALID()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(),
        nullable=False,
        server_default=sa.text("SYSUTCDATETIME()"),
    )


def upgrade() -> None:
    """Create the five application tables."""
    op.create_table(
        "ReferenceImages",
        _id_column("image_id"),
        sa.Column("owner_id", NVARCHAR(255), nullable=False),
        sa.Column("storage_path", NVARCHAR(1024), nullable=False),
        sa.Column("public_url", NVARCHAR(2048), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", NVARCHAR(100), nullable=False),
        sa.Column("quality_score", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("analysis_notes", NVARCHAR(None), nullable=True),
        sa.Column("is_selected", sa.Boolean(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index(
        "ix_reference_images_owner_selected",
        "ReferenceImages",
        ["owner_id", "is_selected", "quality_score"],
    )

    op.create_table(
        "ThumbnailConcepts",
        _id_column("concept_id"),
        sa.Column("owner_id", NVARCHAR(255), nullable=False),
        sa.Column("video_title", NVARCHAR(500), nullable=False),
        sa.Column("concept_number", sa.Integer(), nullable=False),
        sa.Column("name_ar", NVARCHAR(255), nullable=False),
        sa.Column("name_en", NVARCHAR(255), nullable=False),
        sa.Column("emotion", NVARCHAR(100), nullable=False),
        sa.Column("expression", NVARCHAR(None), nullable=False),
        sa.Column("pose", NVARCHAR(None), nullable=False),
        sa.Column("scene", NVARCHAR(None), nullable=False),
        sa.Column("background", NVARCHAR(None), nullable=False),
        sa.Column("arabic_text", NVARCHAR(255), nullable=False),
        sa.Column("text_position", NVARCHAR(100), nullable=False),
        sa.Column("text_style", NVARCHAR(255), nullable=False),
        sa.Column("why_it_works", NVARCHAR(None), nullable=False),
        sa.Column("session_id", UNIQUEIDENTIFIER(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_concepts_owner_created", "ThumbnailConcepts", ["owner_id", "created_at"])
    op.create_index("ix_concepts_session", "ThumbnailConcepts", ["session_id"])

    op.create_table(
        "GeneratedThumbnails",
        _id_column("thumbnail_id"),
        sa.Column("owner_id", NVARCHAR(255), nullable=False),
        sa.Column(
            "concept_id",
            UNIQUEIDENTIFIER(),
            sa.ForeignKey("ThumbnailConcepts.concept_id"),
            nullable=False,
        ),
        sa.Column("storage_path", NVARCHAR(1024), nullable=False),
        sa.Column("public_url", NVARCHAR(2048), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("quality_mode", NVARCHAR(20), nullable=False),
        sa.Column("model_used", NVARCHAR(100), nullable=False),
        sa.Column("generation_time_ms", sa.Integer(), nullable=False),
        sa.Column("api_cost", sa.Float(), nullable=False),
        sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_favorited", sa.Boolean(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index(
        "ix_thumbnails_owner_created",
        "GeneratedThumbnails",
        ["owner_id", "created_at"],
    )

    op.create_table(
        "UsageLogs",
        _id_column("usage_id"),
        sa.Column("owner_id", NVARCHAR(255), nullable=False),
        sa.Column("action_type", NVARCHAR(50), nullable=False),
        sa.Column("api_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("metadata", NVARCHAR(None), nullable=False),
        _created_at(),
    )
    op.create_index("ix_usage_logs_owner_created", "UsageLogs", ["owner_id", "created_at"])

    op.create_table(
        "UserProfiles",
        _id_column("profile_id"),
        sa.Column("owner_id", NVARCHAR(255), nullable=False, unique=True),
        sa.Column("email", NVARCHAR(255), nullable=True),
        sa.Column("quota_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_generated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("api_cost_total", sa.Float(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("SYSUTCDATETIME()"),
        ),
    )


def downgrade() -> None:
    """Drop the application tables."""
    op.drop_table("UserProfiles")
    op.drop_index("ix_usage_logs_owner_created", table_name="UsageLogs")
    op.drop_table("UsageLogs")
    op.drop_index("ix_thumbnails_owner_created", table_name="GeneratedThumbnails")
    op.drop_table("GeneratedThumbnails")
    op.drop_index("ix_concepts_session", table_name="ThumbnailConcepts")
    op.drop_index("ix_concepts_owner_created", table_name="ThumbnailConcepts")
    op.drop_table("ThumbnailConcepts")
    op.drop_index("ix_reference_images_owner_selected", table_name="ReferenceImages")
    op.drop_table("ReferenceImages")
