"""Create users, water_records and water_intakes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: accounts, one aggregate row per user per UTC day,
       and the intake entries of each day.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("gender", sa.String(10), nullable=False, server_default="woman"),
        sa.Column("daily_water_goal", sa.Integer(), nullable=False, server_default=sa.text("2000")),
        sa.Column("avatar_url", sa.String(512), nullable=False),
        sa.Column("token", sa.Text(), nullable=True),
        sa.Column("verify", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_token", sa.String(64), nullable=True),
        sa.Column("password_recovery_token", sa.String(64), nullable=True),
        sa.Column(
            "is_password_verified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_verification_token", "users", ["verification_token"])
    op.create_index("ix_users_password_recovery_token", "users", ["password_recovery_token"])

    op.create_table(
        "water_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("entry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("daily_water_goal", sa.Integer(), nullable=False),
        sa.Column("consumed_water", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("consumed_times", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "consumed_water_percentage", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.PrimaryKeyConstraint("id", name="pk_water_records"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        # Find-or-create relies on this constraint (ON CONFLICT DO NOTHING)
        sa.UniqueConstraint("user_id", "entry_date", name="uq_water_records_user_date"),
    )

    op.create_table(
        "water_intakes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("ml", sa.Integer(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_water_intakes"),
        sa.ForeignKeyConstraint(["record_id"], ["water_records.id"], ondelete="CASCADE"),
        sa.CheckConstraint("ml > 0 AND ml <= 5000", name="ck_water_intakes_ml_range"),
    )
    op.create_index(
        "idx_water_intakes_record_position", "water_intakes", ["record_id", "position"]
    )


def downgrade() -> None:
    op.drop_index("idx_water_intakes_record_position", table_name="water_intakes")
    op.drop_table("water_intakes")
    op.drop_table("water_records")
    op.drop_index("ix_users_password_recovery_token", table_name="users")
    op.drop_index("ix_users_verification_token", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
