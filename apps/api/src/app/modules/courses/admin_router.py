"""
Courses Admin Router

Endpoints:
- POST /admin/courses - Create a course (admin only)
"""

import logging

from fastapi import APIRouter, Depends, status

from app.core.errors import DuplicateEntryError
from app.core.gateway import GatewayContext, gateway
from app.core.responses import envelope
from app.modules.courses import repository
from app.modules.courses.schemas import CourseResponse
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Course")
async def create_course(
    ctx: GatewayContext = Depends(gateway(body="courses.create", roles={UserRole.ADMIN})),
):
    """
    Create a course.

    Raises:
        409 DUPLICATE_ENTRY: A course with the same code exists
    """
    data = ctx.body
    if await repository.get_by_code(ctx.db, data.code):
        raise DuplicateEntryError("code", data.code)

    course = await repository.create(ctx.db, data)
    logger.info(f"Course {course.code} created by {ctx.require_principal().id}")
    return envelope(CourseResponse.model_validate(course), message="Course created successfully")
