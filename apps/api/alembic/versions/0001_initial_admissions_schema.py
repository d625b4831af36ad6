"""initial admissions schema

Revision ID: 0001a1b2c3d4
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates:
1. Enum types for roles, gender, course admission status, application and
   payment status
2. users, courses, password_reset_tokens and applications tables
3. The partial unique index allowing one active application per user and
   course (withdrawn and rejected applications do not count)
4. The unique application_number constraint
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001a1b2c3d4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "user_role": ("student", "faculty", "admin"),
    "gender": ("male", "female", "other"),
    "admission_status": ("open", "closed", "coming-soon"),
    "application_status": (
        "draft",
        "submitted",
        "under-review",
        "accepted",
        "rejected",
        "withdrawn",
    ),
    "payment_status": ("pending", "paid", "failed", "refunded"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the admissions schema."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    # Users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("phone", sa.String(length=10), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False, server_default="student"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    # Courses
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("duration_years", sa.Integer(), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("tuition_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "eligibility",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "admission_status",
            _enum("admission_status"),
            nullable=False,
            server_default="open",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_courses_code"),
    )
    op.create_index("ix_courses_department", "courses", ["department"], unique=False)
    op.create_index("ix_courses_admission_status", "courses", ["admission_status"], unique=False)

    # Password reset tokens
    op.create_table(
        "password_reset_tokens",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash", name="uq_password_reset_tokens_token_hash"),
    )
    op.create_index(
        "ix_password_reset_tokens_user_id", "password_reset_tokens", ["user_id"], unique=False
    )
    op.create_index(
        "ix_password_reset_tokens_expires_at",
        "password_reset_tokens",
        ["expires_at"],
        unique=False,
    )

    # Applications
    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "status", _enum("application_status"), nullable=False, server_default="draft"
        ),
        sa.Column("application_number", sa.String(length=32), nullable=True),
        sa.Column("personal_info", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("academic_records", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("personal_statement", sa.Text(), nullable=True),
        sa.Column(
            "preferences",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("review_comments", sa.Text(), nullable=True),
        sa.Column(
            "payment_status", _enum("payment_status"), nullable=False, server_default="pending"
        ),
        sa.Column("payment_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["reviewed_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("application_number", name="uq_applications_application_number"),
    )
    op.create_index(
        "ix_applications_user_course", "applications", ["user_id", "course_id"], unique=False
    )
    op.create_index("ix_applications_status", "applications", ["status"], unique=False)

    # One active application per (user, course)
    op.create_index(
        "uq_applications_active_user_course",
        "applications",
        ["user_id", "course_id"],
        unique=True,
        postgresql_where=sa.text("status NOT IN ('withdrawn', 'rejected')"),
    )


def downgrade() -> None:
    """Drop the admissions schema."""
    op.drop_index("uq_applications_active_user_course", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_index("ix_applications_user_course", table_name="applications")
    op.drop_table("applications")

    op.drop_index("ix_password_reset_tokens_expires_at", table_name="password_reset_tokens")
    op.drop_index("ix_password_reset_tokens_user_id", table_name="password_reset_tokens")
    op.drop_table("password_reset_tokens")

    op.drop_index("ix_courses_admission_status", table_name="courses")
    op.drop_index("ix_courses_department", table_name="courses")
    op.drop_table("courses")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(*ENUMS[name], name=name).drop(bind, checkfirst=True)
