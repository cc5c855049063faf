"""Create users, catalog and appointments tables

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy stores enum member names
USER_ROLES = ("CLIENT", "PRACTITIONER", "ADMIN", "SUPERADMIN")
APPOINTMENT_STATUSES = ("BOOKED", "COMPLETED", "CANCELLED")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("hashed_password", sa.String, nullable=False),
        sa.Column("first_name", sa.String, nullable=False),
        sa.Column("last_name", sa.String, nullable=False),
        sa.Column("phone", sa.String, nullable=True, index=True),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False, server_default="CLIENT"),
        sa.Column("institute", sa.String, nullable=True, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("is_walk_in", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        "categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("slug", sa.String, unique=True, index=True, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "services",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("category_id", UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=True, index=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("slug", sa.String, unique=True, index=True, nullable=False),
        sa.Column("short_description", sa.String, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("price_cents", sa.Integer, nullable=True),
        sa.Column("image_url", sa.String, nullable=True),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        "service_options",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("service_id", UUID(as_uuid=True), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("price_cents", sa.Integer, nullable=True),
    )

    op.create_table(
        "appointments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("practitioner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("client_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("service_id", UUID(as_uuid=True), sa.ForeignKey("services.id"), nullable=True, index=True),
        sa.Column("service_option_id", UUID(as_uuid=True), sa.ForeignKey("service_options.id"), nullable=True),
        sa.Column("custom_service_name", sa.String, nullable=True),
        sa.Column("custom_price_cents", sa.Integer, nullable=True),
        sa.Column("custom_duration_minutes", sa.Integer, nullable=True),
        sa.Column("start_at", sa.DateTime, nullable=False, index=True),
        sa.Column("status", sa.Enum(*APPOINTMENT_STATUSES, name="appointment_status"), nullable=False, index=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("payment_intent_id", sa.String, unique=True, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_appointments_practitioner_start",
        "appointments",
        ["practitioner_id", "start_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_appointments_practitioner_start", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("service_options")
    op.drop_table("services")
    op.drop_table("categories")
    op.drop_table("users")
    op.execute("DROP TYPE appointment_status")
    op.execute("DROP TYPE user_role")
