"""
Course Models

Courses are read publicly and created by admins. Eligibility criteria are
stored as a JSON list of {"criteria": str, "minimumPercentage": number}.
"""

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, value_enum


class AdmissionStatus(str, enum.Enum):
    """Whether a course currently accepts applications."""

    OPEN = "open"
    CLOSED = "closed"
    COMING_SOON = "coming-soon"


class Department(str, enum.Enum):
    COMPUTER_SCIENCE = "Computer Science"
    MECHANICAL = "Mechanical"
    ELECTRONICS = "Electronics & Communication"
    CIVIL = "Civil"
    ELECTRICAL = "Electrical"
    INFORMATION_TECHNOLOGY = "Information Technology"
    MANAGEMENT = "Management"
    APPLIED_SCIENCES = "Applied Sciences"


class Course(BaseModel):
    """An academic programme students can apply to."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    duration_years: Mapped[int] = mapped_column(Integer, nullable=False)

    # Seats
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    tuition_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # [{"criteria": "10th grade", "minimumPercentage": 60}, ...]
    eligibility: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    admission_status: Mapped[AdmissionStatus] = mapped_column(
        value_enum(AdmissionStatus, "admission_status"),
        nullable=False,
        default=AdmissionStatus.OPEN,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_courses_department", "department"),
        Index("ix_courses_admission_status", "admission_status"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, code={self.code})>"
