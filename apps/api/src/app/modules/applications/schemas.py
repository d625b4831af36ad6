"""
Application Schemas

Pydantic schemas for application requests (registered with the schema
registry) and response serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import Field, model_validator

from app.core.responses import ResponseSchema
from app.core.validation import RequestSchema, cross_field_error, register_schema
from app.modules.applications.models import ApplicationStatus, PaymentStatus


class Category(str, Enum):
    GENERAL = "general"
    OBC = "obc"
    SC = "sc"
    ST = "st"
    OTHER = "other"


class Stream(str, Enum):
    SCIENCE = "science"
    COMMERCE = "commerce"
    ARTS = "arts"


class DecisionOutcome(str, Enum):
    """Final outcomes a reviewer can record."""

    ACCEPTED = ApplicationStatus.ACCEPTED.value
    REJECTED = ApplicationStatus.REJECTED.value


ApplicationSort = Literal["createdAt", "-createdAt", "submittedAt", "-submittedAt"]


# ============================================
# Application blocks
# ============================================


class EmergencyContact(RequestSchema):
    name: str = Field(..., min_length=1, max_length=100)
    relation: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., pattern=r"^[0-9]{10}$")


class PersonalInfo(RequestSchema):
    """Personal information section."""

    father_name: str = Field(..., min_length=1, max_length=100)
    mother_name: str = Field(..., min_length=1, max_length=100)
    category: Category
    nationality: str = Field("Indian", min_length=1, max_length=50)
    emergency_contact: EmergencyContact | None = None


class TenthRecord(RequestSchema):
    board: str = Field(..., min_length=1, max_length=100)
    school: str = Field(..., min_length=1, max_length=200)
    percentage: float = Field(..., ge=0, le=100)
    year_of_passing: int = Field(..., ge=1950, le=2100)


class TwelfthRecord(TenthRecord):
    stream: Stream


class AcademicRecords(RequestSchema):
    """Academic records section."""

    tenth: TenthRecord
    twelfth: TwelfthRecord

    @model_validator(mode="after")
    def twelfth_after_tenth(self) -> "AcademicRecords":
        if self.twelfth.year_of_passing <= self.tenth.year_of_passing:
            raise cross_field_error(
                "academicRecords.twelfth.yearOfPassing",
                "12th year of passing must be after 10th year of passing",
                self.twelfth.year_of_passing,
            )
        return self


class Preferences(RequestSchema):
    hostel_required: bool = False
    transport_required: bool = False
    scholarship_interest: bool = False


# ============================================
# Requests
# ============================================


@register_schema("applications.create")
class ApplicationCreate(RequestSchema):
    """Request body for POST /applications."""

    course_id: UUID
    personal_info: PersonalInfo
    academic_records: AcademicRecords
    personal_statement: str | None = Field(None, max_length=1000)
    preferences: Preferences = Field(default_factory=Preferences)


@register_schema("applications.update")
class ApplicationUpdate(RequestSchema):
    """Request body for PUT /applications/{id}. Only present blocks are replaced."""

    personal_info: PersonalInfo | None = None
    academic_records: AcademicRecords | None = None
    personal_statement: str | None = Field(None, max_length=1000)
    preferences: Preferences | None = None


@register_schema("applications.list_query")
class ApplicationListQuery(RequestSchema):
    """Query string for GET /applications/my."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    sort: ApplicationSort = "-createdAt"
    status: ApplicationStatus | None = None
    search: str | None = Field(None, min_length=1, max_length=32)


@register_schema("applications.eligibility")
class EligibilityCheckRequest(RequestSchema):
    """Request body for POST /applications/check-eligibility."""

    course_id: UUID
    tenth_percentage: float | None = Field(None, ge=0, le=100)
    twelfth_percentage: float | None = Field(None, ge=0, le=100)


@register_schema("admin.applications_query")
class AdminApplicationsQuery(RequestSchema):
    """Query string for GET /admin/applications."""

    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort: ApplicationSort = "-createdAt"
    status: ApplicationStatus | None = None
    course_id: UUID | None = None
    search: str | None = Field(None, min_length=1, max_length=32)


@register_schema("admin.review")
class ReviewRequest(RequestSchema):
    """Request body for PUT /admin/applications/{id}/review."""

    comments: str | None = Field(None, max_length=2000)


@register_schema("admin.decision")
class DecisionRequest(RequestSchema):
    """Request body for PUT /admin/applications/{id}/decision."""

    decision: DecisionOutcome
    comments: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def rejection_needs_comments(self) -> "DecisionRequest":
        if self.decision == DecisionOutcome.REJECTED and not self.comments:
            raise cross_field_error(
                "comments", "Comments are required when rejecting an application"
            )
        return self


# ============================================
# Responses
# ============================================


class ApplicationResponse(ResponseSchema):
    id: UUID
    user_id: UUID
    course_id: UUID
    status: ApplicationStatus
    application_number: str | None = None
    personal_info: dict
    academic_records: dict
    personal_statement: str | None = None
    preferences: dict
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None
    review_comments: str | None = None
    payment_status: PaymentStatus
    payment_amount: float
    created_at: datetime
    updated_at: datetime


class EligibilityResponse(ResponseSchema):
    eligible: bool
    course_name: str
    failed_criteria: list[str] | None = None
    message: str
