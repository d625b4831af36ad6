"""
Auth Service Layer

Business logic for accounts: registration, login, profile, password change
and the password reset flow.

Security considerations:
- Passwords are hashed with bcrypt; hashes are only recomputed on change/reset
- Login failures return one generic error for unknown email and bad password
- Reset tokens use secrets.token_urlsafe and are SHA-256 hashed before storage
- Reset requests answer identically whether or not the account exists
- Tokens and passwords are never logged
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.config import settings
from app.core.email import send_password_reset
from app.core.errors import (
    AccountInactiveError,
    DuplicateEntryError,
    GatewayError,
    InvalidCredentialsError,
    NotFoundError,
)
from app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.modules.auth import repository
from app.modules.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetConfirm,
    ProfileUpdateRequest,
    RegisterRequest,
)
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# 256 bits of entropy when using token_urlsafe
RESET_TOKEN_LENGTH = 32


def _hash_token(token: str) -> str:
    """Hex-encoded SHA-256 of a reset token, used as its storage key."""
    return hashlib.sha256(token.encode()).hexdigest()


class IncorrectPasswordError(GatewayError):
    """Raised when the current password given for a change does not match."""

    def __init__(self):
        super().__init__(
            message="Current password is incorrect",
            error_code="INCORRECT_PASSWORD",
            status_code=400,
        )


class InvalidResetTokenError(GatewayError):
    """Raised when a reset token is unknown, used or expired."""

    def __init__(self):
        super().__init__(
            message="This password reset link is invalid or has expired",
            error_code="INVALID_RESET_TOKEN",
            status_code=400,
        )


@dataclass
class IssuedTokens:
    user: User
    access_token: str
    refresh_token: str


def issue_tokens(user: User) -> IssuedTokens:
    """Create an access/refresh token pair for a user."""
    additional_claims = {
        "email": user.email,
        "role": user.role.value,
        "name": user.full_name,
    }
    return IssuedTokens(
        user=user,
        access_token=create_access_token(str(user.id), additional_claims=additional_claims),
        refresh_token=create_refresh_token(str(user.id)),
    )


async def register(db: AsyncSession, data: RegisterRequest) -> IssuedTokens:
    """
    Create a student or faculty account and sign it in.

    Raises:
        DuplicateEntryError: Email already registered
    """
    if await UserRepository.email_exists(db, data.email):
        raise DuplicateEntryError("email", data.email)

    user = await UserRepository.create(
        db,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.profile.first_name,
        last_name=data.profile.last_name,
        role=UserRole(data.role.value),
        phone=data.profile.phone,
        date_of_birth=data.profile.date_of_birth,
        gender=data.profile.gender,
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered user {user.id} ({user.role.value})")
    return issue_tokens(user)


async def login(db: AsyncSession, data: LoginRequest) -> IssuedTokens:
    """
    Check credentials and issue tokens.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        AccountInactiveError: Account has been deactivated
    """
    user = await UserRepository.get_by_email(db, data.email)

    if not user or not verify_password(data.password, user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account {user.id}")
        raise AccountInactiveError()

    await UserRepository.touch_last_login(db, user.id, datetime.now(UTC))
    await db.refresh(user)

    logger.info(f"User logged in: {user.id} (role: {user.role.value})")
    return issue_tokens(user)


async def get_profile(db: AsyncSession, principal: Principal) -> User:
    """Load the caller's own account."""
    user = await UserRepository.get_by_id(db, principal.id)
    if user is None:
        raise NotFoundError("User", principal.id)
    return user


async def update_profile(
    db: AsyncSession, principal: Principal, data: ProfileUpdateRequest
) -> User:
    """Apply the fields present in the request to the caller's profile."""
    user = await get_profile(db, principal)
    changes = data.model_dump(exclude_unset=True)
    user = await UserRepository.update_profile(db, user, **changes)
    logger.info(f"Updated profile for user {user.id}: {sorted(changes)}")
    return user


async def change_password(
    db: AsyncSession, principal: Principal, data: ChangePasswordRequest
) -> None:
    """
    Change the caller's password after checking the current one.

    Raises:
        IncorrectPasswordError: Current password does not match
    """
    user = await get_profile(db, principal)

    if not verify_password(data.current_password, user.password_hash):
        logger.warning(f"Incorrect current password for user {user.id}")
        raise IncorrectPasswordError()

    await UserRepository.set_password_hash(db, user, hash_password(data.new_password))
    await repository.delete_unused_for_user(db, user.id)
    await db.commit()

    logger.info(f"Password changed for user {user.id}")


async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Issue a reset token and email it, if the account exists and is active.

    Returns nothing either way so callers cannot tell whether the email is
    registered.
    """
    user = await UserRepository.get_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown or inactive account")
        return

    token = secrets.token_urlsafe(RESET_TOKEN_LENGTH)
    expires_at = datetime.now(UTC) + timedelta(hours=settings.password_reset_token_hours)

    # One outstanding token per user
    await repository.delete_unused_for_user(db, user.id)
    await repository.create_reset_token(db, user.id, _hash_token(token), expires_at)
    await db.commit()

    logger.info(f"Password reset token issued for user {user.id}")

    # Non-blocking: a failed email must not fail the request
    try:
        await send_password_reset(user.email, user.full_name, token)
    except Exception as e:
        logger.error(f"Failed to send password reset email for user {user.id}: {e}")


async def confirm_password_reset(db: AsyncSession, data: PasswordResetConfirm) -> None:
    """
    Consume a reset token and set the new password.

    Raises:
        InvalidResetTokenError: Token unknown, already used or expired
    """
    reset_token = await repository.get_by_token_hash(db, _hash_token(data.token))

    if reset_token is None or reset_token.used_at is not None:
        raise InvalidResetTokenError()

    expires_at = reset_token.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    if expires_at < datetime.now(UTC):
        raise InvalidResetTokenError()

    user = await UserRepository.get_by_id(db, reset_token.user_id)
    if user is None or not user.is_active:
        raise InvalidResetTokenError()

    await UserRepository.set_password_hash(db, user, hash_password(data.new_password))
    await repository.mark_used(db, reset_token)
    await db.commit()

    logger.info(f"Password reset completed for user {user.id}")
