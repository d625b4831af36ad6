"""
User Models

Database models for accounts and authentication.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, value_enum


class UserRole(str, Enum):
    """User roles in the system."""

    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class User(BaseModel):
    """
    User model for authentication and authorization.

    The role is chosen at registration and never changes afterwards.
    password_hash is only recomputed on password change or reset.
    """

    __tablename__ = "users"

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Profile fields
    first_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )
    date_of_birth: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )
    gender: Mapped[Gender | None] = mapped_column(
        value_enum(Gender, "gender"),
        nullable=True,
    )

    # Role and permissions
    role: Mapped[UserRole] = mapped_column(
        value_enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.STUDENT,
    )

    # Account status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def full_name(self) -> str:
        """Return user's full name."""
        return f"{self.first_name} {self.last_name}"
