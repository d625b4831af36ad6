"""
Courses Router

Public, read-only course endpoints.

Endpoints:
- GET /courses - List courses with search, filters and pagination
- GET /courses/{course_id} - Course details
"""

from fastapi import APIRouter, Depends

from app.core.errors import NotFoundError
from app.core.gateway import GatewayContext, gateway
from app.core.responses import envelope, paginated
from app.modules.courses import repository
from app.modules.courses.schemas import CourseResponse

router = APIRouter()


@router.get("", summary="List Courses")
async def list_courses(
    ctx: GatewayContext = Depends(gateway(query="courses.list_query", authenticated=False)),
):
    """
    Query parameters: page, limit (1-100), sort (name, code, tuitionFee,
    createdAt; prefix "-" for descending), search, department, admissionStatus.
    """
    courses, total = await repository.list_courses(ctx.db, ctx.query)
    return paginated(
        [CourseResponse.model_validate(course) for course in courses],
        total=total,
        page=ctx.query.page,
        limit=ctx.query.limit,
    )


@router.get("/{course_id}", summary="Get Course")
async def get_course(
    ctx: GatewayContext = Depends(gateway(ids=("course_id",), authenticated=False)),
):
    course = await repository.get_by_id(ctx.db, ctx.ids["course_id"])
    if course is None or not course.is_active:
        raise NotFoundError("Course", ctx.ids["course_id"])
    return envelope(CourseResponse.model_validate(course))
