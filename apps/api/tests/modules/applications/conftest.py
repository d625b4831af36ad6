"""
Fixtures for applications tests.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.modules.applications.models import ApplicationStatus
from app.modules.applications.schemas import ApplicationCreate


class FakeApplicationRepository:
    """
    In-memory stand-in for app.modules.applications.repository.

    Each call yields to the event loop once so concurrent callers interleave
    the way they would against a real database.
    """

    def __init__(self):
        self.applications: dict = {}

    def add(self, user_id, course_id=None, status=ApplicationStatus.DRAFT, **fields):
        application = SimpleNamespace(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id or uuid4(),
            status=status,
            application_number=None,
            personal_info={},
            academic_records={},
            personal_statement=None,
            preferences={},
            submitted_at=None,
            reviewed_at=None,
            reviewed_by=None,
            review_comments=None,
        )
        for key, value in fields.items():
            setattr(application, key, value)
        self.applications[application.id] = application
        return application

    async def create(self, db, user_id, data):
        await asyncio.sleep(0)
        return self.add(
            user_id,
            data.course_id,
            personal_info=data.personal_info.model_dump(mode="json", by_alias=True),
            academic_records=data.academic_records.model_dump(mode="json", by_alias=True),
            personal_statement=data.personal_statement,
        )

    async def get_by_id(self, db, id):
        await asyncio.sleep(0)
        return self.applications.get(id)

    async def get_active_for_user_and_course(self, db, user_id, course_id):
        await asyncio.sleep(0)
        for application in self.applications.values():
            if (
                application.user_id == user_id
                and application.course_id == course_id
                and application.status
                not in (ApplicationStatus.WITHDRAWN, ApplicationStatus.REJECTED)
            ):
                return application
        return None

    async def update_draft_content(self, db, id, **fields):
        await asyncio.sleep(0)
        application = self.applications[id]
        if application.status != ApplicationStatus.DRAFT:
            return False
        for key, value in fields.items():
            setattr(application, key, value)
        return True

    async def compare_and_set_status(self, db, id, expected, status, **fields):
        await asyncio.sleep(0)
        application = self.applications[id]
        if application.status != expected:
            return False
        application.status = status
        for key, value in fields.items():
            setattr(application, key, value)
        return True

    async def refresh(self, db, application):
        await asyncio.sleep(0)
        return self.applications[application.id]

    async def count_all(self, db):
        await asyncio.sleep(0)
        return len(self.applications)

    async def max_number_with_prefix(self, db, prefix):
        await asyncio.sleep(0)
        numbers = [
            a.application_number
            for a in self.applications.values()
            if a.application_number and a.application_number.startswith(prefix)
        ]
        return max(numbers, default=None)


@pytest.fixture
def fake_repository():
    fake = FakeApplicationRepository()
    with patch("app.modules.applications.lifecycle.repository", fake):
        yield fake


@pytest.fixture
def active_course():
    return SimpleNamespace(
        id=uuid4(),
        name="B.Tech Computer Science",
        is_active=True,
        eligibility=[
            {"criteria": "10th grade", "minimumPercentage": 60},
            {"criteria": "12th grade", "minimumPercentage": 70},
        ],
    )


@pytest.fixture
def course_repository(active_course):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=active_course)
    with patch("app.modules.applications.lifecycle.course_repository", repo):
        yield repo


@pytest.fixture
def application_create(active_course):
    return ApplicationCreate.model_validate(
        {
            "courseId": str(active_course.id),
            "personalInfo": {
                "fatherName": "Ramesh Kumar",
                "motherName": "Sita Devi",
                "category": "general",
            },
            "academicRecords": {
                "tenth": {
                    "board": "CBSE",
                    "school": "DPS",
                    "percentage": 88,
                    "yearOfPassing": 2019,
                },
                "twelfth": {
                    "board": "CBSE",
                    "school": "DPS",
                    "percentage": 91.5,
                    "yearOfPassing": 2021,
                    "stream": "science",
                },
            },
        }
    )
