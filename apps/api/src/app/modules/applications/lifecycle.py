"""
Application Lifecycle Engine

Named transition functions for admission applications. Each one checks the
actor's role (and ownership where it applies), validates the transition
against VALID_STATUS_TRANSITIONS and only then writes.

State machine:

    draft        -> submitted | withdrawn
    submitted    -> under-review | accepted | rejected | withdrawn
    under-review -> accepted | rejected | withdrawn
    accepted, rejected, withdrawn: terminal

Application numbers are issued once, on draft -> submitted, by
ApplicationNumberIssuer: {PREFIX}{year}{sequence:06d}. Count, assignment and
commit happen under one asyncio.Lock so concurrent submissions in this
process cannot receive the same number; the unique column backs this up.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, authorize
from app.core.config import settings
from app.core.errors import DuplicateEntryError, GatewayError, NotFoundError
from app.modules.applications import repository
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.applications.schemas import ApplicationCreate, ApplicationUpdate
from app.modules.courses import repository as course_repository
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

APPLICANT_ROLES = frozenset({UserRole.STUDENT})
OWNER_ROLES = frozenset({UserRole.STUDENT, UserRole.ADMIN})
REVIEWER_ROLES = frozenset({UserRole.FACULTY, UserRole.ADMIN})

# Valid status transitions - prevents invalid state changes
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.WITHDRAWN,
    },
    ApplicationStatus.SUBMITTED: {
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.ACCEPTED,  # Fast-track decision
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    },
    ApplicationStatus.UNDER_REVIEW: {
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    },
    # Terminal states - no transitions allowed
    ApplicationStatus.ACCEPTED: set(),
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.WITHDRAWN: set(),
}

DECISION_STATUSES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})


class InvalidApplicationStateError(GatewayError):
    """Raised when an application is not in a state that allows the operation."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="INVALID_APPLICATION_STATE",
            status_code=409,
        )


class InvalidStatusTransitionError(InvalidApplicationStateError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def can_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    return new in VALID_STATUS_TRANSITIONS.get(current, set())


def ensure_transition(current: ApplicationStatus, new: ApplicationStatus) -> None:
    if not can_transition(current, new):
        raise InvalidStatusTransitionError(current, new)


# ============================================
# Application numbers
# ============================================


class ApplicationNumberIssuer:
    """
    Single-writer issuer of application numbers.

    The sequence is the total application count plus one, raised above the
    highest number already issued this year so withdrawn or unsubmitted
    drafts never lead to a repeat.
    """

    SEQUENCE_WIDTH = 6

    def __init__(
        self,
        prefix: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.prefix = prefix or settings.application_number_prefix
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()

    def format(self, year: int, sequence: int) -> str:
        return f"{self.prefix}{year}{sequence:0{self.SEQUENCE_WIDTH}d}"

    @staticmethod
    def sequence_of(number: str | None, year_prefix: str) -> int:
        if not number or not number.startswith(year_prefix):
            return 0
        tail = number[len(year_prefix) :]
        return int(tail) if tail.isdigit() else 0

    async def submit(self, db: AsyncSession, application: Application) -> Application:
        """
        Assign the next number and move the application to submitted.

        Raises:
            InvalidStatusTransitionError: The application left draft meanwhile
        """
        async with self._lock:
            now = self._clock()
            year_prefix = f"{self.prefix}{now.year}"

            total = await repository.count_all(db)
            highest = await repository.max_number_with_prefix(db, year_prefix)
            sequence = max(total, self.sequence_of(highest, year_prefix)) + 1
            number = self.format(now.year, sequence)

            moved = await repository.compare_and_set_status(
                db,
                application.id,
                ApplicationStatus.DRAFT,
                ApplicationStatus.SUBMITTED,
                application_number=number,
                submitted_at=now,
            )

        application = await repository.refresh(db, application)
        if not moved:
            raise InvalidStatusTransitionError(application.status, ApplicationStatus.SUBMITTED)

        logger.info(f"Application {application.id} submitted as {number}")
        return application


number_issuer = ApplicationNumberIssuer()


# ============================================
# Transitions
# ============================================


async def _transition(
    db: AsyncSession,
    application: Application,
    new_status: ApplicationStatus,
    **fields,
) -> Application:
    current = application.status
    ensure_transition(current, new_status)

    moved = await repository.compare_and_set_status(
        db, application.id, current, new_status, **fields
    )
    application = await repository.refresh(db, application)
    if not moved:
        raise InvalidStatusTransitionError(application.status, new_status)

    logger.info(f"Application {application.id}: {current.value} -> {new_status.value}")
    return application


async def create(db: AsyncSession, actor: Principal, data: ApplicationCreate) -> Application:
    """
    Create a draft application for the acting student.

    Raises:
        ForbiddenError: Actor is not a student
        NotFoundError: Course does not exist
        DuplicateEntryError: Actor already has an active application for the course
    """
    authorize(actor, APPLICANT_ROLES)

    course = await course_repository.get_by_id(db, data.course_id)
    if course is None or not course.is_active:
        raise NotFoundError("Course", data.course_id)

    existing = await repository.get_active_for_user_and_course(db, actor.id, data.course_id)
    if existing is not None:
        logger.warning(f"{actor} already has application {existing.id} for course {course.id}")
        raise DuplicateEntryError(
            "courseId",
            str(data.course_id),
            "You have already applied for this course",
        )

    try:
        application = await repository.create(db, actor.id, data)
    except IntegrityError as e:
        # Lost a race against a concurrent create for the same course
        await db.rollback()
        raise DuplicateEntryError(
            "courseId",
            str(data.course_id),
            "You have already applied for this course",
        ) from e

    logger.info(f"Application {application.id} created by {actor.id} for course {course.id}")
    return application


async def update_draft(
    db: AsyncSession,
    application: Application,
    actor: Principal,
    changes: ApplicationUpdate,
) -> Application:
    """
    Replace content blocks of a draft. Ownership is checked before state.

    Raises:
        ForbiddenError: Not the owner (admins bypass)
        InvalidApplicationStateError: Application is no longer a draft
    """
    authorize(actor, OWNER_ROLES, resource_owner=application.user_id)

    if application.status != ApplicationStatus.DRAFT:
        raise InvalidApplicationStateError("Cannot update application after submission")

    values = {}
    for block in ("personal_info", "academic_records", "preferences"):
        model = getattr(changes, block)
        if model is not None:
            values[block] = model.model_dump(mode="json", by_alias=True)
    if "personal_statement" in changes.model_fields_set:
        values["personal_statement"] = changes.personal_statement
    if not values:
        return application

    # Guarded on status so a submit that commits first wins
    written = await repository.update_draft_content(db, application.id, **values)
    application = await repository.refresh(db, application)
    if not written:
        raise InvalidApplicationStateError("Cannot update application after submission")

    logger.info(f"Application {application.id} draft updated: {sorted(values)}")
    return application


async def submit(
    db: AsyncSession,
    application: Application,
    actor: Principal,
    issuer: ApplicationNumberIssuer | None = None,
) -> Application:
    """
    Submit a draft and issue its application number.

    Raises:
        ForbiddenError: Not the owner (admins bypass)
        InvalidStatusTransitionError: Not a draft
    """
    authorize(actor, OWNER_ROLES, resource_owner=application.user_id)
    ensure_transition(application.status, ApplicationStatus.SUBMITTED)

    return await (issuer or number_issuer).submit(db, application)


async def review(
    db: AsyncSession,
    application: Application,
    actor: Principal,
    comments: str | None = None,
) -> Application:
    """Start reviewing a submitted application (faculty/admin)."""
    authorize(actor, REVIEWER_ROLES)

    fields = {"reviewed_by": actor.id, "reviewed_at": datetime.now(UTC)}
    if comments:
        fields["review_comments"] = comments
    return await _transition(db, application, ApplicationStatus.UNDER_REVIEW, **fields)


async def decide(
    db: AsyncSession,
    application: Application,
    actor: Principal,
    outcome: ApplicationStatus,
    comments: str | None = None,
) -> Application:
    """
    Accept or reject a submitted or under-review application (faculty/admin).

    Raises:
        ForbiddenError: Actor is not faculty or admin
        InvalidStatusTransitionError: Outcome not allowed from the current state
    """
    authorize(actor, REVIEWER_ROLES)

    if outcome not in DECISION_STATUSES:
        raise InvalidStatusTransitionError(application.status, outcome)

    return await _transition(
        db,
        application,
        outcome,
        reviewed_by=actor.id,
        reviewed_at=datetime.now(UTC),
        review_comments=comments,
    )


async def withdraw(db: AsyncSession, application: Application, actor: Principal) -> Application:
    """Withdraw a non-terminal application (owner, admins bypass)."""
    authorize(actor, OWNER_ROLES, resource_owner=application.user_id)
    return await _transition(db, application, ApplicationStatus.WITHDRAWN)
