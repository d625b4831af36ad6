"""
Applications Service Layer

Loads applications for the routers, delegates state changes to lifecycle.py
and sends applicant notifications.

Notification emails are non-blocking: a failure is logged and never undoes
or fails the transition that triggered it.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, authorize
from app.core.email import send_application_decision, send_application_submitted
from app.core.errors import NotFoundError
from app.modules.applications import lifecycle, repository
from app.modules.applications.eligibility import EligibilityScores, check_eligibility
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.applications.schemas import (
    AdminApplicationsQuery,
    ApplicationCreate,
    ApplicationListQuery,
    ApplicationUpdate,
    DecisionRequest,
    EligibilityCheckRequest,
    EligibilityResponse,
)
from app.modules.courses import repository as course_repository
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

ELIGIBLE_MESSAGE = "You are eligible to apply for this course"
NOT_ELIGIBLE_MESSAGE = "You do not meet the eligibility criteria"


async def load_application(db: AsyncSession, application_id: UUID) -> Application:
    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise NotFoundError("Application", application_id)
    return application


async def get_application(db: AsyncSession, application_id: UUID, actor: Principal) -> Application:
    """Owner, faculty and admins may view an application."""
    application = await load_application(db, application_id)
    if actor.role != UserRole.FACULTY:
        authorize(actor, resource_owner=application.user_id)
    return application


async def list_my_applications(
    db: AsyncSession, actor: Principal, query: ApplicationListQuery
) -> tuple[list[Application], int]:
    return await repository.list_for_user(db, actor.id, query)


async def list_applications(
    db: AsyncSession, query: AdminApplicationsQuery
) -> tuple[list[Application], int]:
    return await repository.list_all(db, query)


async def create_application(
    db: AsyncSession, actor: Principal, data: ApplicationCreate
) -> Application:
    return await lifecycle.create(db, actor, data)


async def update_application(
    db: AsyncSession, application_id: UUID, actor: Principal, changes: ApplicationUpdate
) -> Application:
    application = await load_application(db, application_id)
    return await lifecycle.update_draft(db, application, actor, changes)


async def withdraw_application(
    db: AsyncSession, application_id: UUID, actor: Principal
) -> Application:
    application = await load_application(db, application_id)
    return await lifecycle.withdraw(db, application, actor)


async def review_application(
    db: AsyncSession, application_id: UUID, actor: Principal, comments: str | None
) -> Application:
    application = await load_application(db, application_id)
    return await lifecycle.review(db, application, actor, comments)


async def _applicant_and_course(db: AsyncSession, application: Application):
    user = await UserRepository.get_by_id(db, application.user_id)
    course = await course_repository.get_by_id(db, application.course_id)
    return user, course


async def submit_application(
    db: AsyncSession, application_id: UUID, actor: Principal
) -> Application:
    """Submit a draft, then email the applicant their application number."""
    application = await load_application(db, application_id)
    application = await lifecycle.submit(db, application, actor)

    try:
        user, course = await _applicant_and_course(db, application)
        if user and course:
            await send_application_submitted(
                to_email=user.email,
                name=user.full_name,
                course_name=course.name,
                application_number=application.application_number,
            )
    except Exception as e:
        logger.error(f"Failed to send submission email for application {application.id}: {e}")

    return application


async def decide_application(
    db: AsyncSession, application_id: UUID, actor: Principal, data: DecisionRequest
) -> Application:
    """Record an accept/reject decision, then notify the applicant."""
    application = await load_application(db, application_id)
    outcome = ApplicationStatus(data.decision.value)
    application = await lifecycle.decide(db, application, actor, outcome, data.comments)

    try:
        user, course = await _applicant_and_course(db, application)
        if user and course:
            await send_application_decision(
                to_email=user.email,
                name=user.full_name,
                course_name=course.name,
                application_number=application.application_number,
                accepted=outcome == ApplicationStatus.ACCEPTED,
                comments=data.comments,
            )
    except Exception as e:
        logger.error(f"Failed to send decision email for application {application.id}: {e}")

    return application


async def check_course_eligibility(
    db: AsyncSession, data: EligibilityCheckRequest
) -> EligibilityResponse:
    """
    Compare the given percentages with the course's eligibility criteria.

    Raises:
        NotFoundError: Course does not exist
    """
    course = await course_repository.get_by_id(db, data.course_id)
    if course is None or not course.is_active:
        raise NotFoundError("Course", data.course_id)

    result = check_eligibility(
        course.eligibility or [],
        EligibilityScores(tenth=data.tenth_percentage, twelfth=data.twelfth_percentage),
    )
    return EligibilityResponse(
        eligible=result.eligible,
        course_name=course.name,
        failed_criteria=result.failed_criteria or None,
        message=ELIGIBLE_MESSAGE if result.eligible else NOT_ELIGIBLE_MESSAGE,
    )
