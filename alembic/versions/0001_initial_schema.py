"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Profiles, jobs, investigations and their items, reports, webhooks, batch
jobs and operations, and the audit log.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String, nullable=True),
        sa.Column("avatar_url", sa.String, nullable=True),
        sa.Column("hashed_password", sa.String, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("role", sa.String, nullable=False, server_default="user"),
        sa.Column(
            "is_suspended", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("suspension_reason", sa.String, nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('user', 'pro', 'admin')", name="ck_profile_role"),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"])
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)

    # --- investigations ---
    op.create_table(
        "investigations",
        sa.Column("investigation_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="active"),
        sa.Column("tags", JSONType, nullable=False),
        sa.Column("metadata_attributes", JSONType, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'archived')",
            name="ck_investigation_status",
        ),
    )
    op.create_index("ix_investigations_user_id", "investigations", ["user_id"])

    # --- jobs ---
    op.create_table(
        "jobs",
        sa.Column("job_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "investigation_id",
            sa.Uuid(),
            sa.ForeignKey("investigations.investigation_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("tool_name", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("input_data", JSONType, nullable=False),
        sa.Column("output_data", JSONType, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed')",
            name="ck_job_status",
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_job_progress"
        ),
    )
    op.create_index("ix_jobs_user_id", "jobs", ["user_id"])
    op.create_index("ix_jobs_investigation_id", "jobs", ["investigation_id"])
    op.create_index("ix_jobs_tool_name", "jobs", ["tool_name"])

    # --- investigation_items ---
    op.create_table(
        "investigation_items",
        sa.Column("item_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "investigation_id",
            sa.Uuid(),
            sa.ForeignKey("investigations.investigation_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "job_id",
            sa.Uuid(),
            sa.ForeignKey("jobs.job_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("tags", JSONType, nullable=False),
        sa.Column(
            "is_favorite", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "investigation_id", "job_id", name="uq_investigation_item_job"
        ),
    )
    op.create_index(
        "ix_investigation_items_investigation_id",
        "investigation_items",
        ["investigation_id"],
    )
    op.create_index("ix_investigation_items_job_id", "investigation_items", ["job_id"])

    # --- reports ---
    op.create_table(
        "reports",
        sa.Column("report_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "investigation_id",
            sa.Uuid(),
            sa.ForeignKey("investigations.investigation_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("template", sa.String, nullable=False),
        sa.Column("format", sa.String, nullable=False, server_default="pdf"),
        sa.Column("report_data", JSONType, nullable=False),
        sa.Column("generation_metadata", JSONType, nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_reports_user_id", "reports", ["user_id"])
    op.create_index("ix_reports_investigation_id", "reports", ["investigation_id"])
    op.create_index("ix_reports_template", "reports", ["template"])

    # --- webhooks ---
    op.create_table(
        "webhooks",
        sa.Column("webhook_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("events", JSONType, nullable=False),
        sa.Column("secret", sa.String, nullable=False),
        sa.Column("headers", JSONType, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("total_deliveries", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "successful_deliveries", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("failed_deliveries", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_delivery_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_webhooks_user_id", "webhooks", ["user_id"])

    # --- batch_jobs ---
    op.create_table(
        "batch_jobs",
        sa.Column("batch_job_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "investigation_id",
            sa.Uuid(),
            sa.ForeignKey("investigations.investigation_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("total_operations", sa.Integer, nullable=False, server_default="0"),
        sa.Column("options", JSONType, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_batch_jobs_user_id", "batch_jobs", ["user_id"])

    # --- batch_operations ---
    op.create_table(
        "batch_operations",
        sa.Column("operation_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "batch_job_id",
            sa.Uuid(),
            sa.ForeignKey("batch_jobs.batch_job_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tool_name", sa.String, nullable=False),
        sa.Column("input_data", JSONType, nullable=False),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("metadata_attributes", JSONType, nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_batch_operations_batch_job_id", "batch_operations", ["batch_job_id"]
    )

    # --- audit_logs ---
    op.create_table(
        "audit_logs",
        sa.Column("audit_log_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "actor_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String, nullable=False),
        sa.Column("resource_type", sa.String, nullable=True),
        sa.Column("resource_id", sa.String, nullable=True),
        sa.Column("ip_address", sa.String, nullable=True),
        sa.Column("user_agent", sa.String, nullable=True),
        sa.Column("metadata_attributes", JSONType, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("batch_operations")
    op.drop_table("batch_jobs")
    op.drop_table("webhooks")
    op.drop_table("reports")
    op.drop_table("investigation_items")
    op.drop_table("jobs")
    op.drop_table("investigations")
    op.drop_table("profiles")
