"""unified objects, sync configs, user connections and sync runs

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "unified_objects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("connection_id", sa.String(length=255), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("mime_type", sa.String(length=255), nullable=True),
        sa.Column("metadata_raw", JSONType, nullable=False),
        sa.Column("metadata_normalized", JSONType, nullable=True),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("canonical_url", sa.String(length=512), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "external_id", name="uq_unified_objects_provider_external_id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_unified_objects_provider", "unified_objects", ["provider"])
    op.create_index("ix_unified_objects_connection_id", "unified_objects", ["connection_id"])
    op.create_index("ix_unified_objects_type", "unified_objects", ["type"])
    op.create_index("ix_unified_objects_state", "unified_objects", ["state"])
    op.create_index(
        "ix_unified_objects_connection_provider_type",
        "unified_objects",
        ["connection_id", "provider", "type"],
    )

    op.create_table(
        "connection_sync_configs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("connection_id", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("sync_config", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("connection_id", "provider", name="uq_connection_sync_configs_connection_provider"),
    )
    op.create_index("ix_connection_sync_configs_connection_id", "connection_sync_configs", ["connection_id"])
    op.create_index("ix_connection_sync_configs_provider", "connection_sync_configs", ["provider"])

    op.create_table(
        "user_connections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("end_user_id", sa.String(length=255), nullable=False),
        sa.Column("provider_config_key", sa.String(length=100), nullable=False),
        sa.Column("connection_id", sa.String(length=255), nullable=False),
        sa.Column("end_user_email", sa.String(length=320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("end_user_id", "provider_config_key", name="uq_user_connections_user_provider"),
    )
    op.create_index("ix_user_connections_end_user_id", "user_connections", ["end_user_id"])
    op.create_index("ix_user_connections_connection_id", "user_connections", ["connection_id"])

    op.create_table(
        "sync_runs",
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("connection_id", sa.String(length=255), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("trigger", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("synced", sa.Integer(), nullable=False),
        sa.Column("skipped", sa.Integer(), nullable=False),
        sa.Column("errors", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("run_id"),
    )
    op.create_index("ix_sync_runs_provider", "sync_runs", ["provider"])


def downgrade() -> None:
    op.drop_index("ix_sync_runs_provider", table_name="sync_runs")
    op.drop_table("sync_runs")
    op.drop_index("ix_user_connections_connection_id", table_name="user_connections")
    op.drop_index("ix_user_connections_end_user_id", table_name="user_connections")
    op.drop_table("user_connections")
    op.drop_index("ix_connection_sync_configs_provider", table_name="connection_sync_configs")
    op.drop_index("ix_connection_sync_configs_connection_id", table_name="connection_sync_configs")
    op.drop_table("connection_sync_configs")
    op.drop_index("ix_unified_objects_connection_provider_type", table_name="unified_objects")
    op.drop_index("ix_unified_objects_state", table_name="unified_objects")
    op.drop_index("ix_unified_objects_type", table_name="unified_objects")
    op.drop_index("ix_unified_objects_connection_id", table_name="unified_objects")
    op.drop_index("ix_unified_objects_provider", table_name="unified_objects")
    op.drop_table("unified_objects")
