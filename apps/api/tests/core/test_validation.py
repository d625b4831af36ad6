"""
Unit tests for the schema registry and validate().
"""

from datetime import date, timedelta

import pytest

import app.modules.applications.schemas  # noqa: F401 - registers application schemas
import app.modules.auth.schemas  # noqa: F401 - registers auth schemas
import app.modules.courses.schemas  # noqa: F401 - registers course schemas
from app.core.errors import RequestValidationFailed
from app.core.validation import (
    RequestSchema,
    SchemaRegistry,
    UnknownSchemaError,
    schema_registry,
    validate,
)


def _fields(exc_info) -> dict[str, object]:
    return {error.field: error.value for error in exc_info.value.errors}


@pytest.fixture
def application_payload():
    return {
        "courseId": "0b5f6a52-64b4-4d35-9ab4-5f5b0d7d2f10",
        "personalInfo": {
            "fatherName": "Ramesh Kumar",
            "motherName": "Sita Devi",
            "category": "general",
        },
        "academicRecords": {
            "tenth": {"board": "CBSE", "school": "DPS", "percentage": 88, "yearOfPassing": 2019},
            "twelfth": {
                "board": "CBSE",
                "school": "DPS",
                "percentage": 91.5,
                "yearOfPassing": 2021,
                "stream": "science",
            },
        },
    }


class TestSchemaRegistry:
    """Tests for schema registration and lookup."""

    def test_registered_ids(self):
        ids = schema_registry.ids()
        for schema_id in (
            "auth.register",
            "auth.login",
            "applications.create",
            "applications.update",
            "admin.decision",
            "courses.create",
        ):
            assert schema_id in ids

    def test_unknown_schema(self):
        with pytest.raises(UnknownSchemaError):
            schema_registry.get("nope.missing")

    def test_latest_version_is_default(self):
        registry = SchemaRegistry()

        class V1(RequestSchema):
            a: int

        class V2(RequestSchema):
            b: int

        registry.register("thing", V1, version=1)
        registry.register("thing", V2, version=2)
        assert registry.get("thing") is V2
        assert registry.get("thing", version=1) is V1

    def test_conflicting_registration_rejected(self):
        registry = SchemaRegistry()

        class A(RequestSchema):
            pass

        class B(RequestSchema):
            pass

        registry.register("thing", A)
        with pytest.raises(ValueError):
            registry.register("thing", B)


class TestValidate:
    """Tests for payload validation."""

    def test_valid_payload_returns_model(self, application_payload):
        model = validate("applications.create", application_payload)
        assert model.personal_info.father_name == "Ramesh Kumar"
        assert model.personal_info.nationality == "Indian"
        assert model.academic_records.twelfth.percentage == 91.5

    def test_unknown_fields_dropped(self, application_payload):
        application_payload["status"] = "accepted"
        application_payload["applicationNumber"] = "BMIET2025999999"
        model = validate("applications.create", application_payload)
        assert "status" not in model.model_dump()
        assert "application_number" not in model.model_dump()

    def test_lax_coercion(self, application_payload):
        application_payload["academicRecords"]["tenth"]["percentage"] = "55"
        model = validate("applications.create", application_payload)
        assert model.academic_records.tenth.percentage == 55.0

    def test_reports_every_failing_field(self):
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("auth.login", {"email": "not-an-email"})

        fields = _fields(exc_info)
        assert set(fields) == {"email", "password"}
        assert fields["email"] == "not-an-email"
        assert fields["password"] is None

    def test_nested_paths_use_wire_names(self, application_payload):
        application_payload["academicRecords"]["tenth"]["percentage"] = 120
        application_payload["personalInfo"]["category"] = "unknown"

        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("applications.create", application_payload)

        fields = _fields(exc_info)
        assert fields["academicRecords.tenth.percentage"] == 120
        assert fields["personalInfo.category"] == "unknown"

    def test_cross_field_rule_names_its_field(self, application_payload):
        application_payload["academicRecords"]["twelfth"]["yearOfPassing"] = 2018

        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("applications.create", application_payload)

        fields = _fields(exc_info)
        assert fields == {"academicRecords.twelfth.yearOfPassing": 2018}

    def test_rejection_requires_comments(self):
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("admin.decision", {"decision": "rejected"})
        assert list(_fields(exc_info)) == ["comments"]

        model = validate("admin.decision", {"decision": "accepted"})
        assert model.decision.value == "accepted"

    def test_password_strength(self):
        payload = {
            "email": "student@bmiet.edu",
            "password": "alllowercase1",
            "profile": {"firstName": "Asha", "lastName": "Verma"},
        }
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("auth.register", payload)
        assert "password" in _fields(exc_info)

    def test_date_of_birth_must_be_past(self):
        tomorrow = date.today() + timedelta(days=1)
        payload = {
            "email": "student@bmiet.edu",
            "password": "Str0ng!Pass",
            "profile": {
                "firstName": "Asha",
                "lastName": "Verma",
                "dateOfBirth": tomorrow.isoformat(),
            },
        }
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("auth.register", payload)
        assert _fields(exc_info) == {"profile.dateOfBirth": tomorrow.isoformat()}

    def test_self_registration_cannot_pick_admin(self):
        payload = {
            "email": "student@bmiet.edu",
            "password": "Str0ng!Pass",
            "profile": {"firstName": "Asha", "lastName": "Verma"},
            "role": "admin",
        }
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("auth.register", payload)
        assert "role" in _fields(exc_info)

    def test_available_seats_within_total(self):
        payload = {
            "name": "Computer Science",
            "code": "cs-101",
            "department": "Computer Science",
            "description": "Four year programme",
            "durationYears": 4,
            "totalSeats": 60,
            "availableSeats": 61,
            "tuitionFee": 125000,
        }
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("courses.create", payload)
        assert _fields(exc_info) == {"availableSeats": 61}

        payload["availableSeats"] = 60
        assert validate("courses.create", payload).code == "CS-101"

    def test_missing_body_validates_as_empty_object(self):
        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("auth.password_reset_request", None)
        assert list(_fields(exc_info)) == ["email"]

    def test_list_query_accepts_search(self):
        query = validate("applications.list_query", {"page": "2", "search": "BMIET2025"})
        assert (query.page, query.search) == (2, "BMIET2025")

        with pytest.raises(RequestValidationFailed) as exc_info:
            validate("applications.list_query", {"search": ""})
        assert list(_fields(exc_info)) == ["search"]
