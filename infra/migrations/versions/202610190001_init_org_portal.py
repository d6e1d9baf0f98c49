"""init org portal tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

ROLE_ENUM = sa.Enum("EMPLOYEE", "MANAGER", "OWNER", "SUPER_ADMIN", name="role")
PRIORITY_ENUM = sa.Enum("LOW", "NORMAL", "HIGH", "URGENT", name="announcementpriority")
SUBMISSION_STATUS_ENUM = sa.Enum("PENDING", "ASSIGNED", "COMPLETED", name="submissionstatus")
TRAINING_STATUS_ENUM = sa.Enum("ASSIGNED", "IN_PROGRESS", "COMPLETED", name="trainingstatus")


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("correlation_id", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("event_id"),
    )
    op.create_index("ix_events_event_type", "events", ["event_type"])
    op.create_index("ix_events_ts", "events", ["ts"])
    op.create_index("ix_events_actor_id", "events", ["actor_id"])
    op.create_index("ix_events_correlation_id", "events", ["correlation_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("actor_role", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("resource", sa.String(), nullable=False),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_ts", "audit_logs", ["ts"])

    op.create_table(
        "departments",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_departments_name", "departments", ["name"], unique=True)
    op.create_index("ix_departments_created_at", "departments", ["created_at"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", ROLE_ENUM, nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("department_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_department_id", "users", ["department_id"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "teams",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_teams_name", "teams", ["name"], unique=True)
    op.create_index("ix_teams_created_at", "teams", ["created_at"])

    op.create_table(
        "team_members",
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("team_id", "user_id"),
    )
    op.create_index("ix_team_members_user", "team_members", ["user_id"])

    op.create_table(
        "user_tags",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "key"),
    )
    op.create_index("ix_user_tags_key_value", "user_tags", ["key", "value"])

    op.create_table(
        "manager_assignments",
        sa.Column("manager_id", sa.String(), nullable=False),
        sa.Column("employee_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["manager_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("manager_id", "employee_id"),
    )
    op.create_index("ix_manager_assignments_employee", "manager_assignments", ["employee_id"])

    op.create_table(
        "access_grants",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("domain", sa.String(), nullable=False),
        sa.Column("granted_by_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "domain"),
    )

    op.create_table(
        "announcements",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("priority", PRIORITY_ENUM, nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("pinned", sa.Boolean(), nullable=False),
        sa.Column("author_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_announcements_pinned", "announcements", ["pinned"])
    op.create_index("ix_announcements_author_id", "announcements", ["author_id"])
    op.create_index("ix_announcements_created_at", "announcements", ["created_at"])

    op.create_table(
        "inventory_submissions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("claim_number", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("status", SUBMISSION_STATUS_ENUM, nullable=False),
        sa.Column("assigned_to_id", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_submissions_user_id", "inventory_submissions", ["user_id"])
    op.create_index("ix_inventory_submissions_status", "inventory_submissions", ["status"])
    op.create_index("ix_inventory_submissions_assigned_to_id", "inventory_submissions", ["assigned_to_id"])
    op.create_index("ix_inventory_submissions_created_at", "inventory_submissions", ["created_at"])

    op.create_table(
        "training_assignments",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("employee_id", sa.String(), nullable=False),
        sa.Column("course_title", sa.String(), nullable=False),
        sa.Column("status", TRAINING_STATUS_ENUM, nullable=False),
        sa.Column("assigned_by_id", sa.String(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_training_assignments_employee_id", "training_assignments", ["employee_id"])
    op.create_index("ix_training_assignments_status", "training_assignments", ["status"])
    op.create_index("ix_training_assignments_assigned_at", "training_assignments", ["assigned_at"])

    op.create_table(
        "employee_contacts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("emergency_contact_name", sa.String(), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_employee_contacts_user_id", "employee_contacts", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_employee_contacts_user_id", table_name="employee_contacts")
    op.drop_table("employee_contacts")

    op.drop_index("ix_training_assignments_assigned_at", table_name="training_assignments")
    op.drop_index("ix_training_assignments_status", table_name="training_assignments")
    op.drop_index("ix_training_assignments_employee_id", table_name="training_assignments")
    op.drop_table("training_assignments")

    op.drop_index("ix_inventory_submissions_created_at", table_name="inventory_submissions")
    op.drop_index("ix_inventory_submissions_assigned_to_id", table_name="inventory_submissions")
    op.drop_index("ix_inventory_submissions_status", table_name="inventory_submissions")
    op.drop_index("ix_inventory_submissions_user_id", table_name="inventory_submissions")
    op.drop_table("inventory_submissions")

    op.drop_index("ix_announcements_created_at", table_name="announcements")
    op.drop_index("ix_announcements_author_id", table_name="announcements")
    op.drop_index("ix_announcements_pinned", table_name="announcements")
    op.drop_table("announcements")

    op.drop_table("access_grants")

    op.drop_index("ix_manager_assignments_employee", table_name="manager_assignments")
    op.drop_table("manager_assignments")

    op.drop_index("ix_user_tags_key_value", table_name="user_tags")
    op.drop_table("user_tags")

    op.drop_index("ix_team_members_user", table_name="team_members")
    op.drop_table("team_members")

    op.drop_index("ix_teams_created_at", table_name="teams")
    op.drop_index("ix_teams_name", table_name="teams")
    op.drop_table("teams")

    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_department_id", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_departments_created_at", table_name="departments")
    op.drop_index("ix_departments_name", table_name="departments")
    op.drop_table("departments")

    op.drop_index("ix_audit_logs_ts", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_events_correlation_id", table_name="events")
    op.drop_index("ix_events_actor_id", table_name="events")
    op.drop_index("ix_events_ts", table_name="events")
    op.drop_index("ix_events_event_type", table_name="events")
    op.drop_table("events")

    bind = op.get_bind()
    for enum_type in (TRAINING_STATUS_ENUM, SUBMISSION_STATUS_ENUM, PRIORITY_ENUM, ROLE_ENUM):
        enum_type.drop(bind, checkfirst=True)
