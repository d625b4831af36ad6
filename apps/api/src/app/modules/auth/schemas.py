"""Authentication schemas."""

import re
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import EmailStr, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from app.core.responses import ResponseSchema
from app.core.validation import RequestSchema, cross_field_error, register_schema
from app.modules.users.models import Gender, UserRole

# At least one lower, upper, digit and special character
PASSWORD_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
PASSWORD_STRENGTH_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)
PHONE_PATTERN = r"^[0-9]{10}$"


def check_password_strength(value: str) -> str:
    # Lookaheads are not supported by Field(pattern=...)
    if not PASSWORD_STRENGTH.match(value):
        raise PydanticCustomError("password_strength", PASSWORD_STRENGTH_MESSAGE)
    return value


class RegisterRole(str, Enum):
    """Roles open to self-registration."""

    STUDENT = UserRole.STUDENT.value
    FACULTY = UserRole.FACULTY.value


# ============================================
# Requests
# ============================================


class ProfileIn(RequestSchema):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    date_of_birth: date | None = None
    gender: Gender | None = None


@register_schema("auth.register")
class RegisterRequest(RequestSchema):
    """Request body for POST /auth/register."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    profile: ProfileIn
    role: RegisterRole = RegisterRole.STUDENT

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def date_of_birth_in_past(self) -> "RegisterRequest":
        dob = self.profile.date_of_birth
        if dob and dob >= date.today():
            raise cross_field_error(
                "profile.dateOfBirth", "Date of birth must be in the past", dob.isoformat()
            )
        return self


@register_schema("auth.login")
class LoginRequest(RequestSchema):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


@register_schema("auth.profile_update")
class ProfileUpdateRequest(RequestSchema):
    """Request body for PUT /auth/profile. Role and email cannot be changed."""

    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    date_of_birth: date | None = None
    gender: Gender | None = None


@register_schema("auth.change_password")
class ChangePasswordRequest(RequestSchema):
    """Request body for PUT /auth/password."""

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def new_password_differs(self) -> "ChangePasswordRequest":
        if self.new_password == self.current_password:
            raise cross_field_error(
                "newPassword", "New password must be different from the current password"
            )
        return self


@register_schema("auth.password_reset_request")
class PasswordResetRequest(RequestSchema):
    """Request body for POST /auth/password-reset/request."""

    email: EmailStr


@register_schema("auth.password_reset_confirm")
class PasswordResetConfirm(RequestSchema):
    """Request body for POST /auth/password-reset/confirm."""

    token: str = Field(..., min_length=16, max_length=256)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)


# ============================================
# Responses
# ============================================


class UserResponse(ResponseSchema):
    id: UUID
    email: str
    role: UserRole
    first_name: str
    last_name: str
    phone: str | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime


class TokenResponse(ResponseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    """Tokens plus the user they were issued for."""

    user: UserResponse
