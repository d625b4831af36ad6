"""
Schema Validation

Named, versioned request schemas and the validate() entry point the gateway
calls before any handler runs.

Schemas are Pydantic models deriving from RequestSchema. They are registered
under a stable id (e.g. "applications.create") with @register_schema and are
kept separate from the SQLAlchemy models, so storage columns can change
without changing the wire contract.

Validation behaviour:
- exhaustive: Pydantic collects every failing field, all are returned together
- unknown keys are dropped (extra="ignore")
- lax coercion: "55" -> 55.0, "2001-05-17" -> date(2001, 5, 17)
- errors carry a dot-notation path using wire (camelCase) names, the message
  and the rejected raw value
- cross-field rules raise cross_field_error() so the error still names the
  field it concerns
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from app.core.errors import FieldError, RequestValidationFailed

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=type[BaseModel])

CROSS_FIELD_ERROR = "cross_field"


class RequestSchema(BaseModel):
    """Base class for inbound payloads: camelCase on the wire, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


def cross_field_error(field: str, message: str, value: Any = None) -> PydanticCustomError:
    """Build an error for a rule that spans several fields, attributed to `field`."""
    return PydanticCustomError(
        CROSS_FIELD_ERROR,
        message,
        {"field": field, "value": value},
    )


class UnknownSchemaError(KeyError):
    """Raised when a schema id has not been registered."""


class SchemaRegistry:
    """Maps schema ids to (version -> model) definitions."""

    def __init__(self) -> None:
        self._schemas: dict[str, dict[int, type[BaseModel]]] = {}

    def register(self, schema_id: str, model: type[BaseModel], version: int = 1) -> None:
        versions = self._schemas.setdefault(schema_id, {})
        if version in versions and versions[version] is not model:
            raise ValueError(f"Schema {schema_id} v{version} is already registered")
        versions[version] = model

    def get(self, schema_id: str, version: int | None = None) -> type[BaseModel]:
        versions = self._schemas.get(schema_id)
        if not versions:
            raise UnknownSchemaError(schema_id)
        if version is None:
            return versions[max(versions)]
        if version not in versions:
            raise UnknownSchemaError(f"{schema_id} v{version}")
        return versions[version]

    def ids(self) -> list[str]:
        return sorted(self._schemas)


schema_registry = SchemaRegistry()


def register_schema(schema_id: str, version: int = 1) -> Callable[[SchemaT], SchemaT]:
    """Class decorator registering a request schema under `schema_id`."""

    def decorator(model: SchemaT) -> SchemaT:
        schema_registry.register(schema_id, model, version)
        return model

    return decorator


def _field_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def to_field_errors(exc: ValidationError) -> list[FieldError]:
    """Translate a Pydantic ValidationError into ordered FieldErrors."""
    errors: list[FieldError] = []
    for error in exc.errors(include_url=False):
        ctx = error.get("ctx") or {}
        if error["type"] == CROSS_FIELD_ERROR:
            field = ctx.get("field") or _field_path(error["loc"])
            value = ctx.get("value")
        else:
            field = _field_path(error["loc"])
            value = None if error["type"] == "missing" else error.get("input")
        errors.append(FieldError(field=field or "body", message=error["msg"], value=value))
    return errors


def validate(schema_id: str, payload: Any, version: int | None = None) -> BaseModel:
    """
    Validate a (sanitized) payload against a registered schema.

    Returns:
        The coerced model instance, reduced to the declared fields

    Raises:
        RequestValidationFailed: With every field error found
    """
    model = schema_registry.get(schema_id, version)
    if payload is None:
        payload = {}
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        field_errors = to_field_errors(e)
        logger.info(
            f"Validation failed for schema {schema_id}: "
            f"{[error.field for error in field_errors]}"
        )
        raise RequestValidationFailed(field_errors) from e


__all__ = [
    "RequestSchema",
    "SchemaRegistry",
    "UnknownSchemaError",
    "cross_field_error",
    "register_schema",
    "schema_registry",
    "to_field_errors",
    "validate",
]
