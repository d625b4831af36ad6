"""
Applications Admin Router

Review endpoints for faculty and administrators.

Endpoints:
- GET /admin/applications - All applications with filters
- PUT /admin/applications/{application_id}/review - Mark as under review
- PUT /admin/applications/{application_id}/decision - Accept or reject
"""

import logging

from fastapi import APIRouter, Depends

from app.core.gateway import GatewayContext, gateway
from app.core.responses import envelope, paginated
from app.modules.applications import service
from app.modules.applications.schemas import ApplicationResponse
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

REVIEWER_ROLES = {UserRole.FACULTY, UserRole.ADMIN}


@router.get("", summary="List Applications")
async def list_applications(
    ctx: GatewayContext = Depends(
        gateway(query="admin.applications_query", roles=REVIEWER_ROLES)
    ),
):
    """
    Query parameters: page, limit (1-100), sort, status, courseId and search
    (application number prefix).
    """
    applications, total = await service.list_applications(ctx.db, ctx.query)
    return paginated(
        [ApplicationResponse.model_validate(a) for a in applications],
        total=total,
        page=ctx.query.page,
        limit=ctx.query.limit,
    )


@router.put("/{application_id}/review", summary="Start Review")
async def review_application(
    ctx: GatewayContext = Depends(
        gateway(ids=("application_id",), body="admin.review", roles=REVIEWER_ROLES)
    ),
):
    application = await service.review_application(
        ctx.db, ctx.ids["application_id"], ctx.require_principal(), ctx.body.comments
    )
    return envelope(
        ApplicationResponse.model_validate(application),
        message="Application marked as under review",
    )


@router.put("/{application_id}/decision", summary="Record Decision")
async def decide_application(
    ctx: GatewayContext = Depends(
        gateway(ids=("application_id",), body="admin.decision", roles=REVIEWER_ROLES)
    ),
):
    """
    Accept or reject an application. Rejections require comments.

    Raises:
        409 INVALID_APPLICATION_STATE: Application is a draft or already decided
    """
    principal = ctx.require_principal()
    application = await service.decide_application(
        ctx.db, ctx.ids["application_id"], principal, ctx.body
    )
    logger.info(
        f"Decision {ctx.body.decision.value} on application {application.id} by {principal.id}"
    )
    return envelope(
        ApplicationResponse.model_validate(application),
        message=f"Application {ctx.body.decision.value}",
    )
