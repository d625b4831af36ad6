"""
Shared fixtures.

Environment overrides are applied before the application settings are first
imported, so every test sees the same configuration.
"""

import os

os.environ.setdefault("PYTHON_ENV", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("RESEND_API_KEY", "")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from app.core.auth import Principal  # noqa: E402
from app.core.rate_limit import reset_rate_governor  # noqa: E402
from app.modules.users.models import UserRole  # noqa: E402


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


def make_principal(role: UserRole = UserRole.STUDENT, **overrides) -> Principal:
    values = {
        "id": uuid4(),
        "email": f"{role.value}@bmiet.edu",
        "role": role,
        "is_active": True,
        "name": f"Test {role.value.title()}",
    }
    values.update(overrides)
    return Principal(**values)


@pytest.fixture
def student():
    return make_principal(UserRole.STUDENT)


@pytest.fixture
def other_student():
    return make_principal(UserRole.STUDENT, email="other@bmiet.edu")


@pytest.fixture
def faculty():
    return make_principal(UserRole.FACULTY)


@pytest.fixture
def admin():
    return make_principal(UserRole.ADMIN)


@pytest.fixture(autouse=True)
def fresh_rate_governor():
    """Each test starts with empty rate windows."""
    reset_rate_governor()
    yield
    reset_rate_governor()


@pytest.fixture
def principal_factory():
    """Build principals with arbitrary roles and ids."""
    return make_principal
