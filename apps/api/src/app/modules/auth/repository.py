"""
Auth Repository

Database operations for password reset tokens.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PasswordResetToken


async def create_reset_token(
    db: AsyncSession,
    user_id: UUID,
    token_hash: str,
    expires_at: datetime,
) -> PasswordResetToken:
    """Store a new reset token hash. The caller commits."""
    reset_token = PasswordResetToken(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=expires_at,
    )
    db.add(reset_token)
    await db.flush()
    return reset_token


async def get_by_token_hash(db: AsyncSession, token_hash: str) -> PasswordResetToken | None:
    """Get a reset token by its hash."""
    result = await db.execute(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == token_hash)
    )
    return result.scalar_one_or_none()


async def mark_used(db: AsyncSession, reset_token: PasswordResetToken) -> PasswordResetToken:
    """Mark a token as consumed. The caller commits."""
    reset_token.used_at = datetime.now(UTC)
    await db.flush()
    return reset_token


async def delete_unused_for_user(db: AsyncSession, user_id: UUID) -> None:
    """Invalidate every outstanding token for a user."""
    await db.execute(
        delete(PasswordResetToken).where(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.used_at.is_(None),
        )
    )


async def purge_stale(db: AsyncSession, now: datetime) -> int:
    """Delete used and expired tokens. Returns the number removed."""
    result = await db.execute(
        delete(PasswordResetToken).where(
            or_(
                PasswordResetToken.expires_at < now,
                PasswordResetToken.used_at.is_not(None),
            )
        )
    )
    await db.commit()
    return result.rowcount or 0
