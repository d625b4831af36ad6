"""
Authentication and Authorization Module

Identity & role gate for the API.

authenticate() turns a bearer token into a Principal: the JWT signature,
expiry and token type are checked with the helpers in security.py, then the
user is re-loaded from the database so deactivation and deletion take effect
immediately instead of at token expiry.

authorize() checks the caller's role against the route's required set and,
when a resource owner is given, that the caller owns it. Admins bypass the
ownership check but never the role check.

SECURITY NOTE:
- Invalid and expired tokens are reported separately (INVALID_TOKEN vs
  TOKEN_EXPIRED) so clients know whether to refresh
- Tokens are never logged
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AccountInactiveError,
    AuthenticationRequiredError,
    ForbiddenError,
    InvalidTokenError,
)
from app.core.security import ACCESS_TOKEN_TYPE, decode_token
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    """
    The authenticated caller of a request.

    Populated from the user record after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        email: User's email address
        role: User's role (student, faculty or admin)
        is_active: Whether the account may be used
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: UserRole
    is_active: bool = True
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __str__(self) -> str:
        return f"Principal(id={self.id}, email={self.email}, role={self.role.value})"


def _subject_to_uuid(subject: object) -> UUID:
    try:
        return UUID(str(subject))
    except (TypeError, ValueError) as e:
        raise InvalidTokenError() from e


def _last_login_is_stale(last_login: datetime | None, now: datetime) -> bool:
    if last_login is None:
        return True
    if last_login.tzinfo is None:
        last_login = last_login.replace(tzinfo=UTC)
    return now - last_login >= timedelta(minutes=settings.last_login_refresh_minutes)


async def authenticate(db: AsyncSession, token: str | None) -> Principal:
    """
    Validate a bearer token and load the caller.

    Args:
        db: Database session
        token: Raw bearer token (None when no Authorization header was sent)

    Returns:
        Principal for the token's subject

    Raises:
        AuthenticationRequiredError: No token was presented
        TokenExpiredError: Token signature is valid but it has expired
        InvalidTokenError: Bad signature, wrong token type or unknown user
        AccountInactiveError: The user has been deactivated
    """
    if not token:
        raise AuthenticationRequiredError()

    payload = decode_token(token)

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        logger.warning("Rejected token with wrong type")
        raise InvalidTokenError()

    user_id = _subject_to_uuid(payload.get("sub"))
    user = await UserRepository.get_by_id(db, user_id)

    if user is None:
        logger.warning(f"Token subject {user_id} no longer exists")
        raise InvalidTokenError("User not found")

    if not user.is_active:
        logger.warning(f"Inactive user {user_id} attempted to authenticate")
        raise AccountInactiveError()

    # Best effort and at most once per refresh interval; a failed write must
    # not fail authentication
    now = datetime.now(UTC)
    if _last_login_is_stale(user.last_login, now):
        try:
            await UserRepository.touch_last_login(db, user_id, now)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(f"Could not update last_login for user {user_id}: {e}")

    return Principal(
        id=user.id,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        name=user.full_name,
    )


def authorize(
    principal: Principal,
    required_roles: Iterable[UserRole] | None = None,
    resource_owner: UUID | None = None,
) -> Principal:
    """
    Check that the principal may act on a route and, optionally, a resource.

    Args:
        principal: The authenticated caller
        required_roles: Roles allowed on the route (None means any role)
        resource_owner: Owner id of the target resource, if ownership applies

    Returns:
        The same principal, for chaining

    Raises:
        ForbiddenError: Role not allowed, or caller is not the owner
    """
    if required_roles is not None:
        allowed = set(required_roles)
        if principal.role not in allowed:
            logger.warning(
                f"{principal} denied: role not in {sorted(role.value for role in allowed)}"
            )
            raise ForbiddenError(
                f"Role {principal.role.value} is not authorized to access this resource"
            )

    if resource_owner is not None and not principal.is_admin:
        if str(resource_owner) != str(principal.id):
            logger.warning(f"{principal} denied: not the owner of the resource")
            raise ForbiddenError("Not authorized to access this resource")

    return principal


__all__ = ["Principal", "authenticate", "authorize"]
