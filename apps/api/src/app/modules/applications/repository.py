"""
Applications Repository

Database operations for admission applications.

Design Principles:
- All queries are parameterized
- Only database operations, no business rules (see lifecycle.py)
- Status changes are compare-and-set on the current status, so two
  concurrent transitions cannot both succeed
"""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import INACTIVE_STATUSES, Application, ApplicationStatus
from .schemas import AdminApplicationsQuery, ApplicationCreate, ApplicationListQuery

SORT_COLUMNS = {
    "createdAt": Application.created_at,
    "submittedAt": Application.submitted_at,
}


def _order_by(sort: str):
    column = SORT_COLUMNS[sort.lstrip("-")]
    ordered = column.desc().nulls_last() if sort.startswith("-") else column.asc().nulls_last()
    return ordered, Application.id


async def create(db: AsyncSession, user_id: UUID, data: ApplicationCreate) -> Application:
    """Create a new draft application."""
    new_application = Application(
        user_id=user_id,
        course_id=data.course_id,
        status=ApplicationStatus.DRAFT,
        personal_info=data.personal_info.model_dump(mode="json", by_alias=True),
        academic_records=data.academic_records.model_dump(mode="json", by_alias=True),
        personal_statement=data.personal_statement,
        preferences=data.preferences.model_dump(mode="json", by_alias=True),
    )

    db.add(new_application)
    await db.commit()
    await db.refresh(new_application)

    return new_application


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


async def get_active_for_user_and_course(
    db: AsyncSession, user_id: UUID, course_id: UUID
) -> Application | None:
    """Get the user's application for a course that is not withdrawn or rejected."""
    result = await db.execute(
        select(Application).where(
            Application.user_id == user_id,
            Application.course_id == course_id,
            Application.status.not_in(list(INACTIVE_STATUSES)),
        )
    )
    return result.scalars().first()


async def update_draft_content(db: AsyncSession, id: UUID, **fields) -> bool:
    """
    Overwrite content fields of an application that is still a draft.

    Returns:
        False if the application had already left draft (nothing written)
    """
    result = await db.execute(
        update(Application)
        .where(Application.id == id, Application.status == ApplicationStatus.DRAFT)
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def compare_and_set_status(
    db: AsyncSession,
    id: UUID,
    expected: ApplicationStatus,
    status: ApplicationStatus,
    **fields,
) -> bool:
    """
    Move an application from `expected` to `status`, setting extra columns.

    Returns:
        False if the application was no longer in `expected` (nothing written)
    """
    result = await db.execute(
        update(Application)
        .where(Application.id == id, Application.status == expected)
        .values(status=status, **fields)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def refresh(db: AsyncSession, application: Application) -> Application:
    await db.refresh(application)
    return application


async def count_all(db: AsyncSession) -> int:
    """Total number of applications ever created."""
    return await db.scalar(select(func.count()).select_from(Application)) or 0


async def max_number_with_prefix(db: AsyncSession, prefix: str) -> str | None:
    """Highest application number starting with `prefix` (fixed width, so max is lexical)."""
    return await db.scalar(
        select(func.max(Application.application_number)).where(
            Application.application_number.startswith(prefix, autoescape=True)
        )
    )


async def list_for_user(
    db: AsyncSession, user_id: UUID, query: ApplicationListQuery
) -> tuple[list[Application], int]:
    """The user's applications, newest first by default."""
    conditions = [Application.user_id == user_id]
    if query.status:
        conditions.append(Application.status == query.status)
    if query.search:
        conditions.append(
            Application.application_number.startswith(query.search.upper(), autoescape=True)
        )

    total = await db.scalar(select(func.count()).select_from(Application).where(*conditions))
    result = await db.execute(
        select(Application)
        .where(*conditions)
        .order_by(*_order_by(query.sort))
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return list(result.scalars().all()), total or 0


async def list_all(
    db: AsyncSession, query: AdminApplicationsQuery
) -> tuple[list[Application], int]:
    """All applications with optional status/course/number filters."""
    conditions = []
    if query.status:
        conditions.append(Application.status == query.status)
    if query.course_id:
        conditions.append(Application.course_id == query.course_id)
    if query.search:
        conditions.append(
            Application.application_number.startswith(query.search.upper(), autoescape=True)
        )

    total = await db.scalar(select(func.count()).select_from(Application).where(*conditions))
    result = await db.execute(
        select(Application)
        .where(*conditions)
        .order_by(*_order_by(query.sort))
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return list(result.scalars().all()), total or 0

