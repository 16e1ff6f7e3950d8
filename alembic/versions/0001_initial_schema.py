"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2024-11-04 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("name", name="uq_groups_name"),
    )

    op.create_table(
        "spheres",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_spheres_slug", "spheres", ["slug"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("middle_initial", sa.String(length=10), nullable=True),
        sa.Column("title", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("profile_image", sa.String(length=500), nullable=True),
        sa.Column("mobile_number", sa.String(length=50), nullable=True),
        sa.Column("home_address", sa.Text(), nullable=True),
        sa.Column("church_name", sa.String(length=255), nullable=True),
        sa.Column("church_address", sa.Text(), nullable=True),
        sa.Column("working_or_student", sa.String(length=20), nullable=True),
        sa.Column("vocation_work_sphere", sa.Text(), nullable=True),
        sa.Column("mode_of_payment", sa.String(length=20), nullable=True),
        sa.Column("proof_of_payment_url", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reference_number", sa.String(length=100), nullable=True),
        sa.Column("age_range", sa.String(length=50), nullable=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reconciled", sa.Boolean(), nullable=False),
        sa.Column("finance_checked", sa.Boolean(), nullable=False),
        sa.Column("email_confirmed", sa.Boolean(), nullable=False),
        sa.Column("attendance", sa.Boolean(), nullable=False),
        sa.Column("id_issued", sa.Boolean(), nullable=False),
        sa.Column("book_given", sa.Boolean(), nullable=False),
        sa.Column("source_sheet", sa.String(length=255), nullable=True),
        sa.Column("source_row", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('super_admin','admin','user')", name="ck_users_role"),
        sa.CheckConstraint(
            "working_or_student IS NULL OR working_or_student IN ('working','student')",
            name="ck_users_working_or_student",
        ),
        sa.CheckConstraint(
            "mode_of_payment IS NULL OR mode_of_payment IN ('gcash','bank','cash','other')",
            name="ck_users_mode_of_payment",
        ),
    )
    op.create_index("ix_users_first_name", "users", ["first_name"])
    op.create_index("ix_users_last_name", "users", ["last_name"])
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_source_sheet", "users", ["source_sheet"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('upcoming','ongoing','completed','cancelled')",
            name="ck_events_status",
        ),
    )

    op.create_table(
        "event_user",
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "user_sphere",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("sphere_id", sa.Integer(), sa.ForeignKey("spheres.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("model_type", sa.String(length=50), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_activity_logs_admin_id", "activity_logs", ["admin_id"])
    op.create_index("ix_activity_logs_model", "activity_logs", ["model_type", "model_id"])

    op.create_table(
        "user_files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "uploaded_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("stored_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_files_user_id", "user_files", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_user_files_user_id", table_name="user_files")
    op.drop_table("user_files")
    op.drop_index("ix_activity_logs_model", table_name="activity_logs")
    op.drop_index("ix_activity_logs_admin_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_table("user_sphere")
    op.drop_table("event_user")
    op.drop_table("events")
    op.drop_index("ix_users_source_sheet", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_last_name", table_name="users")
    op.drop_index("ix_users_first_name", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_spheres_slug", table_name="spheres")
    op.drop_table("spheres")
    op.drop_table("groups")
