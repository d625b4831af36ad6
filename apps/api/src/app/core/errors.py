"""
Gateway Errors

Every failure the gateway raises on purpose derives from GatewayError, which
carries the HTTP status and the stable error code the client sees. The error
classifier (error_handlers.py) maps these, plus framework and database
exceptions, onto the external error envelope.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldError:
    """A single rejected field in a validation failure."""

    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


class GatewayError(Exception):
    """Base exception for classified gateway errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


# ============================================
# Input errors
# ============================================


class RequestValidationFailed(GatewayError):
    """Raised when a payload fails its schema. Carries every field error."""

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__(
            message="Validation failed",
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class MalformedIdentifierError(GatewayError):
    """Raised when a path identifier is not a valid UUID."""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(
            message="Invalid resource ID format",
            error_code="INVALID_ID_FORMAT",
            status_code=400,
        )


class InvalidJSONError(GatewayError):
    """Raised when a request body is not valid JSON."""

    def __init__(self):
        super().__init__(
            message="Invalid JSON format in request body",
            error_code="INVALID_JSON",
            status_code=400,
        )


class PayloadTooLargeError(GatewayError):
    """Raised when a request body exceeds the configured size limit."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(
            message="File size too large",
            error_code="FILE_TOO_LARGE",
            status_code=413,
        )


# ============================================
# Authorization errors
# ============================================


class AuthenticationRequiredError(GatewayError):
    """Raised when an authenticated route receives no bearer credential."""

    def __init__(self):
        super().__init__(
            message="Authentication required",
            error_code="AUTHENTICATION_REQUIRED",
            status_code=401,
        )


class InvalidTokenError(GatewayError):
    """Raised when a session token fails signature or claim checks."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message=message, error_code="INVALID_TOKEN", status_code=401)


class TokenExpiredError(GatewayError):
    """Raised when a session token is past its expiry."""

    def __init__(self):
        super().__init__(
            message="Authentication token has expired",
            error_code="TOKEN_EXPIRED",
            status_code=401,
        )


class InvalidCredentialsError(GatewayError):
    """Raised when login credentials do not match."""

    def __init__(self):
        super().__init__(
            message="Invalid email or password",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class AccountInactiveError(GatewayError):
    """Raised when a deactivated account tries to authenticate."""

    def __init__(self):
        super().__init__(
            message="Your account has been deactivated",
            error_code="ACCOUNT_INACTIVE",
            status_code=403,
        )


class ForbiddenError(GatewayError):
    """Raised when the caller's role or ownership does not cover the operation."""

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


# ============================================
# Conflict / lookup errors
# ============================================


class DuplicateEntryError(GatewayError):
    """Raised when a write would break a uniqueness rule."""

    def __init__(self, field: str, value: Any, message: str | None = None):
        self.field = field
        self.value = value
        super().__init__(
            message=message or f"{field[:1].upper()}{field[1:]} '{value}' already exists",
            error_code="DUPLICATE_ENTRY",
            status_code=409,
        )


class NotFoundError(GatewayError):
    """Raised when a referenced resource does not exist."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} {resource_id} not found" if resource_id else f"{resource} not found"
        super().__init__(
            message=message,
            error_code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
        )


# ============================================
# Throttling / dependency errors
# ============================================


class RateLimitExceeded(GatewayError):
    """Raised when the rate governor denies a request."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message="Too many requests, please try again later",
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=429,
        )


class PersistenceUnavailableError(GatewayError):
    """Raised when the record store cannot be reached in time."""

    def __init__(self):
        super().__init__(
            message="Database connection error. Please try again later",
            error_code="DATABASE_ERROR",
            status_code=503,
        )


__all__ = [
    "FieldError",
    "GatewayError",
    "RequestValidationFailed",
    "MalformedIdentifierError",
    "InvalidJSONError",
    "PayloadTooLargeError",
    "AuthenticationRequiredError",
    "InvalidTokenError",
    "TokenExpiredError",
    "InvalidCredentialsError",
    "AccountInactiveError",
    "ForbiddenError",
    "DuplicateEntryError",
    "NotFoundError",
    "RateLimitExceeded",
    "PersistenceUnavailableError",
]
