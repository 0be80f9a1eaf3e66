"""Add hydration settings and intake log"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0002_hydration"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "hydration_settings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("daily_goal_ml", sa.Integer(), server_default=sa.text("2000"), nullable=False),
        sa.Column("reminder_interval_minutes", sa.Integer(), server_default=sa.text("60"), nullable=False),
        sa.Column("reminder_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("wake_hour", sa.Integer(), server_default=sa.text("7"), nullable=False),
        sa.Column("sleep_hour", sa.Integer(), server_default=sa.text("22"), nullable=False),
        sa.Column("last_reminded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_hydration_settings_user_id"),
    )

    op.create_table(
        "hydration_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount_ml", sa.Integer(), server_default=sa.text("250"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_hydration_logs_user_created", "hydration_logs", ["user_id", "created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_hydration_logs_user_created", table_name="hydration_logs")
    op.drop_table("hydration_logs")
    op.drop_table("hydration_settings")
