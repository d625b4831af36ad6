"""
Error Classifier

Maps every exception that escapes a route onto one external error envelope:

    {
        "success": false,
        "message": "...",
        "errorCode": "...",
        "errors": [...],        # validation only
        "field": "...",         # duplicate / malformed id
        "value": ...,
        "retryAfter": 900,      # rate limit only
        "timestamp": "...",
        "path": "/api/...",
        "method": "POST",
        "stack": "..."          # development only
    }

classify() applies an ordered rule list; the first match wins. Unmatched
exceptions become a generic 500 and are logged with their traceback.
"""

import json
import logging
import re
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.errors import (
    DuplicateEntryError,
    FieldError,
    GatewayError,
    InvalidJSONError,
    InvalidTokenError,
    MalformedIdentifierError,
    PayloadTooLargeError,
    PersistenceUnavailableError,
    RateLimitExceeded,
    RequestValidationFailed,
    TokenExpiredError,
)
from app.core.validation import to_field_errors

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
_UNIQUE_KEY_DETAIL = re.compile(r"Key \((.+?)\)=\((.+?)\)")

HTTP_ERROR_CODES = {
    404: "ROUTE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


@dataclass
class ClassifiedError:
    """Result of classifying an exception."""

    http_status: int
    error_code: str
    message: str
    extra: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


# ============================================
# Rule helpers
# ============================================


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_unique_violation(exc: Exception) -> bool:
    if not isinstance(exc, IntegrityError):
        return False
    return _sqlstate(exc) == UNIQUE_VIOLATION or "duplicate key" in str(exc.orig).lower()


def _is_malformed_uuid(exc: Exception) -> bool:
    return isinstance(exc, DataError) and "invalid input syntax for type uuid" in str(
        exc.orig
    ).lower()


def _is_persistence_unavailable(exc: Exception) -> bool:
    if isinstance(exc, PersistenceUnavailableError | OperationalError | InterfaceError):
        return True
    if isinstance(exc, PoolTimeoutError | TimeoutError | ConnectionError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def _duplicate_from_integrity_error(exc: IntegrityError) -> DuplicateEntryError:
    match = _UNIQUE_KEY_DETAIL.search(str(exc.orig))
    if not match:
        return DuplicateEntryError(field="resource", value=None, message="Resource already exists")
    columns = [to_camel(column.strip()) for column in match.group(1).split(",")]
    values = [value.strip() for value in match.group(2).split(",")]
    field_name = ", ".join(columns)
    value: Any = values[0] if len(values) == 1 else values
    return DuplicateEntryError(field=field_name, value=value)


def _framework_validation_errors(exc: RequestValidationError) -> list[FieldError]:
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"query"/"path" location segment
        loc = error.get("loc", ())[1:]
        errors.append(
            FieldError(
                field=".".join(str(part) for part in loc) or "body",
                message=error.get("msg", "Invalid value"),
                value=None if error.get("type") == "missing" else error.get("input"),
            )
        )
    return errors


def _validation(errors: list[FieldError]) -> ClassifiedError:
    return ClassifiedError(
        http_status=400,
        error_code="VALIDATION_ERROR",
        message="Validation failed",
        extra={"errors": [error.to_dict() for error in errors]},
    )


def _from_gateway_error(exc: GatewayError, **extra: Any) -> ClassifiedError:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else {}
    return ClassifiedError(
        http_status=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        extra=extra,
        headers=headers,
    )


# ============================================
# Classifier
# ============================================


def classify(exc: Exception) -> ClassifiedError:
    """
    Classify an exception. The first matching rule wins.

    1. malformed identifier          400 INVALID_ID_FORMAT
    2. uniqueness violation          409 DUPLICATE_ENTRY
    3. schema validation             400 VALIDATION_ERROR
    4. invalid / expired token       401 INVALID_TOKEN / TOKEN_EXPIRED
    5. payload too large             413 FILE_TOO_LARGE
    6. rate limit                    429 RATE_LIMIT_EXCEEDED
    7. persistence unavailable       503 DATABASE_ERROR
    8. malformed JSON                400 INVALID_JSON
    9. other domain errors           their own status and code
    10. framework HTTP errors        their status
    11. anything else                500 INTERNAL_ERROR
    """
    # 1
    if isinstance(exc, MalformedIdentifierError):
        return _from_gateway_error(exc, field=exc.field, value=exc.value)
    if _is_malformed_uuid(exc):
        return ClassifiedError(400, "INVALID_ID_FORMAT", "Invalid resource ID format")

    # 2
    if _is_unique_violation(exc):
        exc = _duplicate_from_integrity_error(exc)
    if isinstance(exc, DuplicateEntryError):
        return _from_gateway_error(exc, field=exc.field, value=exc.value)

    # 3
    if isinstance(exc, RequestValidationFailed):
        return _validation(exc.errors)
    if isinstance(exc, ValidationError):
        return _validation(to_field_errors(exc))
    if isinstance(exc, RequestValidationError):
        return _validation(_framework_validation_errors(exc))

    # 4
    if isinstance(exc, InvalidTokenError | TokenExpiredError):
        return _from_gateway_error(exc)

    # 5
    if isinstance(exc, PayloadTooLargeError):
        return _from_gateway_error(exc)

    # 6
    if isinstance(exc, RateLimitExceeded):
        classified = _from_gateway_error(exc, retryAfter=exc.retry_after_seconds)
        classified.headers["Retry-After"] = str(exc.retry_after_seconds)
        return classified

    # 7
    if _is_persistence_unavailable(exc):
        return _from_gateway_error(PersistenceUnavailableError())

    # 8
    if isinstance(exc, InvalidJSONError):
        return _from_gateway_error(exc)
    if isinstance(exc, json.JSONDecodeError):
        return _from_gateway_error(InvalidJSONError())

    # 9
    if isinstance(exc, GatewayError):
        return _from_gateway_error(exc)

    # 10
    if isinstance(exc, StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404:
            message = "Route not found"
        return ClassifiedError(
            http_status=exc.status_code,
            error_code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            message=message,
            headers=dict(exc.headers or {}),
        )

    # 11
    return ClassifiedError(500, "INTERNAL_ERROR", "Internal server error")


def build_error_body(
    classified: ClassifiedError,
    request: Request,
    exc: Exception | None = None,
) -> dict[str, Any]:
    """Render a classified error as the external envelope."""
    body: dict[str, Any] = {
        "success": False,
        "message": classified.message,
        "errorCode": classified.error_code,
    }
    body.update(classified.extra)
    body["timestamp"] = datetime.now(UTC).isoformat()
    body["path"] = request.url.path
    body["method"] = request.method

    if settings.is_development and exc is not None:
        body["stack"] = "".join(traceback.format_exception(exc))

    return body


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """Single exception handler for the whole application."""
    classified = classify(exc)

    if classified.http_status >= 500:
        if classified.error_code == "INTERNAL_ERROR":
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        else:
            logger.error(f"{classified.error_code} on {request.method} {request.url.path}: {exc}")
    elif classified.http_status in (401, 403, 429):
        logger.warning(
            f"{classified.error_code} on {request.method} {request.url.path}: {classified.message}"
        )

    return JSONResponse(
        status_code=classified.http_status,
        content=jsonable_encoder(build_error_body(classified, request, exc)),
        headers=classified.headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route framework, domain and unexpected errors through the classifier."""
    app.add_exception_handler(GatewayError, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    app.add_exception_handler(ValidationError, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(DBAPIError, handle_exception)
    app.add_exception_handler(PoolTimeoutError, handle_exception)
    app.add_exception_handler(TimeoutError, handle_exception)
    app.add_exception_handler(Exception, handle_exception)


__all__ = [
    "ClassifiedError",
    "build_error_body",
    "classify",
    "handle_exception",
    "register_exception_handlers",
]
