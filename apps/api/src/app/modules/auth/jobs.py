"""
Auth Background Jobs

- purge_expired_reset_tokens: delete used and expired password reset tokens
- prune_rate_windows: drop ended in-memory rate windows

Both are idempotent and open their own sessions.
"""

import logging
from datetime import UTC, datetime

from apscheduler.triggers.interval import IntervalTrigger

from app.core.database import async_session_maker
from app.core.rate_limit import prune_rate_windows
from app.core.scheduler import register_job
from app.modules.auth import repository

logger = logging.getLogger(__name__)

JOB_ID_PURGE_RESET_TOKENS = "auth_purge_reset_tokens"
JOB_ID_PRUNE_RATE_WINDOWS = "auth_prune_rate_windows"


async def purge_expired_reset_tokens() -> int:
    """Delete reset tokens that are used or past expiry."""
    async with async_session_maker() as db:
        removed = await repository.purge_stale(db, datetime.now(UTC))
    logger.info(f"Purged {removed} stale password reset tokens")
    return removed


def register_auth_jobs() -> None:
    """Register auth maintenance jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_PURGE_RESET_TOKENS,
        func=purge_expired_reset_tokens,
        trigger=IntervalTrigger(hours=1),
    )
    register_job(
        job_id=JOB_ID_PRUNE_RATE_WINDOWS,
        func=prune_rate_windows,
        trigger=IntervalTrigger(minutes=15),
    )
