"""
Application Models

Admission applications submitted by students for a course.

Invariants enforced at the database level as well as in the lifecycle engine:
- at most one application per (user, course) outside withdrawn/rejected
  (partial unique index)
- application_number is globally unique once assigned
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, value_enum


class ApplicationStatus(str, enum.Enum):
    """Status of an admission application."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under-review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# Statuses that free the (user, course) slot for a new application
INACTIVE_STATUSES = frozenset({ApplicationStatus.WITHDRAWN, ApplicationStatus.REJECTED})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Application(BaseModel):
    """
    Admission application.

    personal_info, academic_records and preferences are stored as JSON with
    the same camelCase keys the API accepts.
    """

    __tablename__ = "applications"

    # Ownership
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Status tracking
    status: Mapped[ApplicationStatus] = mapped_column(
        value_enum(ApplicationStatus, "application_status"),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )
    application_number: Mapped[str | None] = mapped_column(
        String(32), unique=True, nullable=True
    )

    # Applicant data (editable only while draft)
    personal_info: Mapped[dict] = mapped_column(JSONB, nullable=False)
    academic_records: Mapped[dict] = mapped_column(JSONB, nullable=False)
    personal_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    preferences: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    # Submission / review
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        value_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        Index("ix_applications_user_course", "user_id", "course_id"),
        Index("ix_applications_status", "status"),
        Index(
            "uq_applications_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status NOT IN ('withdrawn', 'rejected')"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status.value})>"
