from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "destinations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_account_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("capacity_mb", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_mb", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("used_mb >= 0", name="ck_destinations_used_non_negative"),
        sa.CheckConstraint("used_mb <= capacity_mb", name="ck_destinations_used_within_capacity"),
    )
    op.create_index("ix_destinations_owner_account_id", "destinations", ["owner_account_id"])

    op.create_table(
        "videos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("relative_path", sa.String(length=2048), nullable=False),
        sa.Column("remote_path", sa.String(length=2048), nullable=False),
        sa.Column("duration_s", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("owner_account_id", sa.String(length=64), nullable=False),
        sa.Column("destination_id", sa.Integer(), sa.ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bitrate_kbps", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("format_name", sa.String(length=128), nullable=False, server_default="unknown"),
        sa.Column("codec", sa.String(length=64), nullable=False, server_default="unknown"),
        sa.Column("width", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("height", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_mp4", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("compatible", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_videos_owner_destination", "videos", ["owner_account_id", "destination_id"])


def downgrade() -> None:
    op.drop_index("ix_videos_owner_destination", table_name="videos")
    op.drop_table("videos")
    op.drop_index("ix_destinations_owner_account_id", table_name="destinations")
    op.drop_table("destinations")
