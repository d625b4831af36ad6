"""
Background Job Scheduler

Scheduled maintenance tasks using APScheduler with AsyncIO support.

Design Principles:
- Jobs are idempotent (safe to run multiple times)
- Jobs open their own database sessions
- Failed jobs are logged but don't crash the scheduler

Usage:
    # At startup, before start_scheduler():
    register_job("purge_reset_tokens", purge_expired_reset_tokens, IntervalTrigger(hours=1))

    # In FastAPI lifespan:
    await start_scheduler()
    yield
    await stop_scheduler()
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, Any]]


@dataclass
class RegisteredJob:
    func: JobFunc
    trigger: BaseTrigger


# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None

# Job registry, scheduled when the scheduler starts
_job_registry: dict[str, RegisteredJob] = {}


class SchedulerConfig:
    """Configuration for the background scheduler."""

    TIMEZONE = "UTC"

    JOB_DEFAULTS = {
        "coalesce": True,  # Combine missed executions into one
        "max_instances": 1,
        "misfire_grace_time": 60 * 5,
    }


def _job_listener(event: JobExecutionEvent) -> None:
    """Log job execution results."""
    if event.exception:
        logger.error(
            f"Job {event.job_id} failed with exception: {event.exception}",
            exc_info=event.exception,
        )
    else:
        logger.info(f"Job {event.job_id} executed successfully")


def register_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    """
    Register a job. Jobs registered before start_scheduler() are scheduled when
    it starts; later registrations are scheduled immediately.
    """
    _job_registry[job_id] = RegisteredJob(func=func, trigger=trigger)

    if _scheduler is not None:
        _scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True)
    logger.info(f"Registered job: {job_id}")


async def start_scheduler() -> AsyncIOScheduler:
    """Create the scheduler, add every registered job and start it."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running, returning existing instance")
        return _scheduler

    _scheduler = AsyncIOScheduler(
        timezone=SchedulerConfig.TIMEZONE,
        job_defaults=SchedulerConfig.JOB_DEFAULTS,
    )
    _scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    for job_id, job in _job_registry.items():
        _scheduler.add_job(job.func, trigger=job.trigger, id=job_id, replace_existing=True)

    _scheduler.start()
    logger.info(f"Background job scheduler started with {len(_job_registry)} jobs")
    return _scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler, waiting for running jobs."""
    global _scheduler

    if _scheduler is None or not _scheduler.running:
        logger.debug("Scheduler not running, nothing to stop")
        return

    _scheduler.shutdown(wait=True)
    logger.info("Background job scheduler stopped")
    _scheduler = None
