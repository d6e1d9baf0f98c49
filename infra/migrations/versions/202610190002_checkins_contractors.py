"""daily check-ins and contractor directory

Revision ID: 202610190002
Revises: 202610190001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610190002"
down_revision = "202610190001"
branch_labels = None
depends_on = None

REVIEW_STATUS_ENUM = sa.Enum("PENDING", "OK", "NEEDS_FOLLOW_UP", name="reviewstatus")


def upgrade() -> None:
    op.create_table(
        "daily_checkins",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_on_time", sa.Boolean(), nullable=False),
        sa.Column("review_status", REVIEW_STATUS_ENUM, nullable=False),
        sa.Column("review_note", sa.String(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by_id", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewed_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_checkins_user_date", "daily_checkins", ["user_id", "check_in_date"])
    op.create_index("ix_daily_checkins_check_in_date", "daily_checkins", ["check_in_date"])
    op.create_index("ix_daily_checkins_submitted_at", "daily_checkins", ["submitted_at"])
    op.create_index("ix_daily_checkins_review_status", "daily_checkins", ["review_status"])

    op.create_table(
        "contractors",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zipcode", sa.String(), nullable=True),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("specialty", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_by_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contractors_name", "contractors", ["name"])
    op.create_index("ix_contractors_created_by_id", "contractors", ["created_by_id"])
    op.create_index("ix_contractors_created_at", "contractors", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_contractors_created_at", table_name="contractors")
    op.drop_index("ix_contractors_created_by_id", table_name="contractors")
    op.drop_index("ix_contractors_name", table_name="contractors")
    op.drop_table("contractors")

    op.drop_index("ix_daily_checkins_review_status", table_name="daily_checkins")
    op.drop_index("ix_daily_checkins_submitted_at", table_name="daily_checkins")
    op.drop_index("ix_daily_checkins_check_in_date", table_name="daily_checkins")
    op.drop_index("ix_daily_checkins_user_date", table_name="daily_checkins")
    op.drop_table("daily_checkins")

    REVIEW_STATUS_ENUM.drop(op.get_bind(), checkfirst=True)
