"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

def _audit_columns():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=200), nullable=False, server_default="System"),
    ]

def upgrade():
    op.create_table(
        "logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_audit_columns(),
        sa.Column("log_type", sa.String(length=50), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("target", sa.String(length=2000), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
    )
    op.create_index("ix_logs_started_at", "logs", ["started_at"])

    op.create_table(
        "project_instances",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_audit_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("main_host", sa.String(length=400), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "parent_project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("project_instances.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )

    op.create_table(
        "data_sets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_audit_columns(),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("allowed_identity_ids", sa.JSON(), nullable=False),
        sa.Column("available_cultures", sa.JSON(), nullable=False),
        sa.Column("secret_key", sa.String(length=400), nullable=True),
        sa.Column("webhook_urls", sa.JSON(), nullable=False),
    )

    op.create_table(
        "data_set_includes",
        sa.Column(
            "parent_data_set_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("data_sets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "included_data_set_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("data_sets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "translations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_audit_columns(),
        sa.Column("internal_group_name1", sa.String(length=200), nullable=True),
        sa.Column("internal_group_name2", sa.String(length=200), nullable=True),
        sa.Column("resource_name", sa.String(length=400), nullable=False),
        sa.Column("translation_name", sa.String(length=400), nullable=False),
        sa.Column("translation_key", sa.String(length=801), nullable=False, server_default=""),
        sa.Column("culture_name", sa.String(length=20), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("content_template", sa.Text(), nullable=True),
        sa.Column("content_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "data_set_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("data_sets.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("source_translation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("source_translation_last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("layout_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_current_version", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_draft_version", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_old_version", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("original_translation_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index(
        "ix_translations_lookup",
        "translations",
        ["data_set_id", "resource_name", "translation_name", "culture_name"],
    )

def downgrade():
    op.drop_index("ix_translations_lookup", table_name="translations")
    op.drop_table("translations")
    op.drop_table("data_set_includes")
    op.drop_table("data_sets")
    op.drop_table("project_instances")
    op.drop_index("ix_logs_started_at", table_name="logs")
    op.drop_table("logs")
