"""
Course Schemas

Pydantic schemas for course queries, admin creation and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.responses import ResponseSchema
from app.core.validation import RequestSchema, cross_field_error, register_schema
from app.modules.courses.models import AdmissionStatus, Department

CourseSort = Literal[
    "name", "-name", "code", "-code", "tuitionFee", "-tuitionFee", "createdAt", "-createdAt"
]


class EligibilityCriterion(RequestSchema):
    """One entry of a course's eligibility list."""

    criteria: str = Field(..., min_length=1, max_length=200)
    minimum_percentage: float | None = Field(None, ge=0, le=100)


@register_schema("courses.list_query")
class CourseListQuery(RequestSchema):
    """Query string for GET /courses."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort: CourseSort = "name"
    search: str | None = Field(None, min_length=1, max_length=100)
    department: Department | None = None
    admission_status: AdmissionStatus | None = None


@register_schema("courses.create")
class CourseCreate(RequestSchema):
    """Request body for POST /admin/courses."""

    name: str = Field(..., min_length=2, max_length=200)
    code: str = Field(..., pattern=r"^[A-Za-z0-9-]{2,20}$")
    department: Department
    description: str = Field(..., min_length=1, max_length=5000)
    duration_years: int = Field(..., ge=1, le=5)
    total_seats: int = Field(..., ge=0)
    available_seats: int = Field(..., ge=0)
    tuition_fee: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    eligibility: list[EligibilityCriterion] = Field(default_factory=list, max_length=10)
    admission_status: AdmissionStatus = AdmissionStatus.OPEN

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def seats_within_total(self) -> "CourseCreate":
        if self.available_seats > self.total_seats:
            raise cross_field_error(
                "availableSeats",
                "Available seats cannot exceed total seats",
                self.available_seats,
            )
        return self


class CourseResponse(ResponseSchema):
    id: UUID
    name: str
    code: str
    department: str
    description: str
    duration_years: int
    total_seats: int
    available_seats: int
    tuition_fee: float
    eligibility: list[dict]
    admission_status: AdmissionStatus
    created_at: datetime
