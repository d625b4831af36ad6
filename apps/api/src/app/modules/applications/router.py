"""
Applications Router

Applicant-facing endpoints.

Endpoints:
- POST /applications - Create a draft (students)
- GET /applications/my - The caller's applications, paginated
- POST /applications/check-eligibility - Compare scores with a course's criteria
- GET /applications/{application_id} - Application details (owner, faculty, admin)
- PUT /applications/{application_id} - Edit a draft (owner)
- PUT /applications/{application_id}/submit - Submit a draft (owner)
- PUT /applications/{application_id}/withdraw - Withdraw (owner)
"""

from fastapi import APIRouter, Depends, status

from app.core.gateway import GatewayContext, gateway
from app.core.responses import envelope, paginated
from app.modules.applications import service
from app.modules.applications.schemas import ApplicationResponse
from app.modules.users.models import UserRole

router = APIRouter()

OWNER_ROLES = {UserRole.STUDENT, UserRole.ADMIN}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Application")
async def create_application(
    ctx: GatewayContext = Depends(
        gateway(body="applications.create", roles={UserRole.STUDENT})
    ),
):
    """
    Create a draft application for an active course.

    Raises:
        404 COURSE_NOT_FOUND: Course does not exist
        409 DUPLICATE_ENTRY: An active application for the course already exists
    """
    application = await service.create_application(ctx.db, ctx.require_principal(), ctx.body)
    return envelope(
        ApplicationResponse.model_validate(application),
        message="Application created successfully",
    )


@router.get("/my", summary="List My Applications")
async def list_my_applications(
    ctx: GatewayContext = Depends(gateway(query="applications.list_query")),
):
    applications, total = await service.list_my_applications(
        ctx.db, ctx.require_principal(), ctx.query
    )
    return paginated(
        [ApplicationResponse.model_validate(a) for a in applications],
        total=total,
        page=ctx.query.page,
        limit=ctx.query.limit,
    )


@router.post("/check-eligibility", summary="Check Eligibility")
async def check_eligibility(
    ctx: GatewayContext = Depends(gateway(body="applications.eligibility")),
):
    result = await service.check_course_eligibility(ctx.db, ctx.body)
    return envelope(result)


@router.get("/{application_id}", summary="Get Application")
async def get_application(
    ctx: GatewayContext = Depends(gateway(ids=("application_id",))),
):
    application = await service.get_application(
        ctx.db, ctx.ids["application_id"], ctx.require_principal()
    )
    return envelope(ApplicationResponse.model_validate(application))


@router.put("/{application_id}", summary="Update Application")
async def update_application(
    ctx: GatewayContext = Depends(
        gateway(ids=("application_id",), body="applications.update", roles=OWNER_ROLES)
    ),
):
    """
    Replace blocks of a draft application.

    Raises:
        409 INVALID_APPLICATION_STATE: Application is no longer a draft
    """
    application = await service.update_application(
        ctx.db, ctx.ids["application_id"], ctx.require_principal(), ctx.body
    )
    return envelope(
        ApplicationResponse.model_validate(application),
        message="Application updated successfully",
    )


@router.put("/{application_id}/submit", summary="Submit Application")
async def submit_application(
    ctx: GatewayContext = Depends(gateway(ids=("application_id",), roles=OWNER_ROLES)),
):
    """Submit a draft; the response carries the issued application number."""
    application = await service.submit_application(
        ctx.db, ctx.ids["application_id"], ctx.require_principal()
    )
    return envelope(
        ApplicationResponse.model_validate(application),
        message="Application submitted successfully",
    )


@router.put("/{application_id}/withdraw", summary="Withdraw Application")
async def withdraw_application(
    ctx: GatewayContext = Depends(gateway(ids=("application_id",), roles=OWNER_ROLES)),
):
    application = await service.withdraw_application(
        ctx.db, ctx.ids["application_id"], ctx.require_principal()
    )
    return envelope(
        ApplicationResponse.model_validate(application),
        message="Application withdrawn successfully",
    )
