from fastapi import APIRouter

from app.modules.applications import admin_router as admin_applications_router
from app.modules.applications import router as applications_router
from app.modules.auth import router as auth_router
from app.modules.courses import admin_router as admin_courses_router
from app.modules.courses import router as courses_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(courses_router, prefix="/courses", tags=["Courses"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)

api_router.include_router(
    admin_courses_router,
    prefix="/admin/courses",
    tags=["Admin - Courses"],
)
