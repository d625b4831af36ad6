"""Courses module - public catalogue and admin course management."""

from app.modules.courses.admin_router import router as admin_router
from app.modules.courses.router import router

__all__ = ["admin_router", "router"]
