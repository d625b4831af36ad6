"""
Course Repository

Filtered, paginated reads and admin inserts for courses.
"""

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Course
from .schemas import CourseCreate, CourseListQuery

SORT_COLUMNS = {
    "name": Course.name,
    "code": Course.code,
    "tuitionFee": Course.tuition_fee,
    "createdAt": Course.created_at,
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_courses(db: AsyncSession, query: CourseListQuery) -> tuple[list[Course], int]:
    """List active courses matching the query. Returns (page of courses, total)."""
    conditions = [Course.is_active.is_(True)]

    if query.department:
        conditions.append(Course.department == query.department.value)
    if query.admission_status:
        conditions.append(Course.admission_status == query.admission_status)
    if query.search:
        pattern = f"%{_escape_like(query.search)}%"
        conditions.append(
            or_(
                Course.name.ilike(pattern, escape="\\"),
                Course.code.ilike(pattern, escape="\\"),
                Course.description.ilike(pattern, escape="\\"),
            )
        )

    total = await db.scalar(select(func.count()).select_from(Course).where(*conditions))

    descending = query.sort.startswith("-")
    column = SORT_COLUMNS[query.sort.lstrip("-")]
    order = column.desc() if descending else column.asc()

    result = await db.execute(
        select(Course)
        .where(*conditions)
        .order_by(order, Course.id)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return list(result.scalars().all()), total or 0


async def get_by_id(db: AsyncSession, id: UUID) -> Course | None:
    """Get course by ID."""
    return await db.get(Course, id)


async def get_by_code(db: AsyncSession, code: str) -> Course | None:
    result = await db.execute(select(Course).where(Course.code == code.upper()))
    return result.scalar_one_or_none()


async def create(db: AsyncSession, data: CourseCreate) -> Course:
    """Insert a new course."""
    course = Course(
        name=data.name,
        code=data.code,
        department=data.department.value,
        description=data.description,
        duration_years=data.duration_years,
        total_seats=data.total_seats,
        available_seats=data.available_seats,
        tuition_fee=data.tuition_fee,
        eligibility=[
            item.model_dump(by_alias=True, exclude_none=True) for item in data.eligibility
        ],
        admission_status=data.admission_status,
    )

    db.add(course)
    await db.commit()
    await db.refresh(course)

    return course
