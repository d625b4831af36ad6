"""
User Repository

Database operations for accounts.
"""

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import Gender, User, UserRole

logger = logging.getLogger(__name__)

# Columns an owner may change through the profile endpoint
PROFILE_FIELDS = frozenset({"first_name", "last_name", "phone", "date_of_birth", "gender"})


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        phone: str | None = None,
        date_of_birth: date | None = None,
        gender: Gender | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record.

        The caller owns the transaction; the row is flushed so its id is set.

        Args:
            db: Database session
            email: User's email address (unique, stored lower-case)
            password_hash: bcrypt hash
            first_name: User's first name
            last_name: User's last name
            role: User's role
            phone: 10-digit phone number (optional)
            date_of_birth: Date of birth (optional)
            gender: Gender (optional)
            is_active: Whether user is active

        Returns:
            Created User instance
        """
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            phone=phone,
            date_of_birth=date_of_birth,
            gender=gender,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        """Get a user by ID."""
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address (case-insensitive)."""
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def touch_last_login(db: AsyncSession, user_id: UUID, at: datetime) -> None:
        """Record the time of the latest successful authentication."""
        await db.execute(update(User).where(User.id == user_id).values(last_login=at))
        await db.commit()

    @staticmethod
    async def update_profile(db: AsyncSession, user: User, **changes) -> User:
        """
        Apply profile changes. Only PROFILE_FIELDS are written; role and
        email are never changed here.
        """
        for key, value in changes.items():
            if key in PROFILE_FIELDS:
                setattr(user, key, value)

        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def set_password_hash(db: AsyncSession, user: User, password_hash: str) -> User:
        """Replace the stored password hash. The caller commits."""
        user.password_hash = password_hash
        await db.flush()
        return user
