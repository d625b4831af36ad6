"""
Unit tests for the applications service layer.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.errors import ForbiddenError, NotFoundError
from app.modules.applications import service
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.schemas import DecisionRequest, EligibilityCheckRequest


def _application(owner_id, status=ApplicationStatus.DRAFT, **fields):
    values = {
        "id": uuid4(),
        "user_id": owner_id,
        "course_id": uuid4(),
        "status": status,
        "application_number": None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


@pytest.fixture
def repository():
    with patch("app.modules.applications.service.repository") as repo:
        repo.get_by_id = AsyncMock()
        yield repo


@pytest.fixture
def courses(active_course):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=active_course)
    with patch("app.modules.applications.service.course_repository", repo):
        yield repo


@pytest.fixture
def users():
    with patch("app.modules.applications.service.UserRepository") as repo:
        repo.get_by_id = AsyncMock(
            return_value=SimpleNamespace(email="asha@bmiet.edu", full_name="Asha Verma")
        )
        yield repo


class TestGetApplication:
    """Tests for read access."""

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db, repository, student):
        repository.get_by_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_application(mock_db, uuid4(), student)

        assert exc_info.value.error_code == "APPLICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_owner_can_read(self, mock_db, repository, student):
        application = _application(student.id)
        repository.get_by_id.return_value = application

        assert await service.get_application(mock_db, application.id, student) is application

    @pytest.mark.asyncio
    async def test_other_student_forbidden(self, mock_db, repository, student, other_student):
        repository.get_by_id.return_value = _application(student.id)

        with pytest.raises(ForbiddenError):
            await service.get_application(mock_db, uuid4(), other_student)

    @pytest.mark.asyncio
    async def test_faculty_and_admin_can_read(self, mock_db, repository, student, faculty, admin):
        application = _application(student.id)
        repository.get_by_id.return_value = application

        assert await service.get_application(mock_db, application.id, faculty) is application
        assert await service.get_application(mock_db, application.id, admin) is application


class TestCheckCourseEligibility:
    """Tests for the eligibility endpoint logic."""

    @pytest.mark.asyncio
    async def test_reports_failed_criteria(self, mock_db, courses, active_course):
        data = EligibilityCheckRequest(
            course_id=active_course.id, tenth_percentage=55, twelfth_percentage=75
        )

        result = await service.check_course_eligibility(mock_db, data)

        assert result.eligible is False
        assert result.failed_criteria == ["10th grade minimum: 60%"]
        assert result.course_name == "B.Tech Computer Science"
        assert result.message == service.NOT_ELIGIBLE_MESSAGE

    @pytest.mark.asyncio
    async def test_eligible(self, mock_db, courses, active_course):
        data = EligibilityCheckRequest(
            course_id=active_course.id, tenth_percentage=90, twelfth_percentage=90
        )

        result = await service.check_course_eligibility(mock_db, data)

        assert result.eligible is True
        assert result.failed_criteria is None
        assert result.message == service.ELIGIBLE_MESSAGE

    @pytest.mark.asyncio
    async def test_unknown_course(self, mock_db, courses):
        courses.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.check_course_eligibility(
                mock_db, EligibilityCheckRequest(course_id=uuid4())
            )


class TestNotifications:
    """Emails follow transitions and never fail them."""

    @pytest.mark.asyncio
    async def test_submit_sends_number(self, mock_db, repository, courses, users, student):
        draft = _application(student.id)
        submitted = _application(
            student.id,
            status=ApplicationStatus.SUBMITTED,
            application_number="BMIET2025000007",
        )
        repository.get_by_id.return_value = draft

        with (
            patch("app.modules.applications.lifecycle.submit", AsyncMock(return_value=submitted)),
            patch(
                "app.modules.applications.service.send_application_submitted", AsyncMock()
            ) as send,
        ):
            result = await service.submit_application(mock_db, draft.id, student)

        assert result is submitted
        send.assert_awaited_once()
        assert send.call_args.kwargs["application_number"] == "BMIET2025000007"
        assert send.call_args.kwargs["to_email"] == "asha@bmiet.edu"

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_submit(
        self, mock_db, repository, courses, users, student
    ):
        draft = _application(student.id)
        submitted = _application(student.id, status=ApplicationStatus.SUBMITTED)
        repository.get_by_id.return_value = draft

        with (
            patch("app.modules.applications.lifecycle.submit", AsyncMock(return_value=submitted)),
            patch(
                "app.modules.applications.service.send_application_submitted",
                AsyncMock(side_effect=RuntimeError("mail down")),
            ),
        ):
            result = await service.submit_application(mock_db, draft.id, student)

        assert result is submitted

    @pytest.mark.asyncio
    async def test_decision_email(self, mock_db, repository, courses, users, student, admin):
        application = _application(student.id, status=ApplicationStatus.UNDER_REVIEW)
        rejected = _application(student.id, status=ApplicationStatus.REJECTED)
        repository.get_by_id.return_value = application
        data = DecisionRequest.model_validate(
            {"decision": "rejected", "comments": "Seats are full"}
        )

        with (
            patch(
                "app.modules.applications.lifecycle.decide", AsyncMock(return_value=rejected)
            ) as decide,
            patch(
                "app.modules.applications.service.send_application_decision", AsyncMock()
            ) as send,
        ):
            await service.decide_application(mock_db, application.id, admin, data)

        decide.assert_awaited_once_with(
            mock_db, application, admin, ApplicationStatus.REJECTED, "Seats are full"
        )
        assert send.call_args.kwargs["accepted"] is False
        assert send.call_args.kwargs["comments"] == "Seats are full"
