"""
Applications Module

Admission applications: drafts, submission with numbered receipts, review
and decisions, plus the course eligibility check.
"""

from app.modules.applications.admin_router import router as admin_router
from app.modules.applications.router import router

__all__ = ["admin_router", "router"]
