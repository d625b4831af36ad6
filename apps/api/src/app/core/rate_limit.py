"""
Rate Limiting Module

Per-identity, per-route-class request budgets over fixed windows.

Route classes:
- AUTH: login. Only failed attempts are counted (register_failure), so a
  successful login never uses up the budget. Fails CLOSED.
- REGISTER: account creation. Fails open.
- PASSWORD_RESET: password change and reset flows. Fails CLOSED.
- DEFAULT: all other API traffic. Fails open.

Counters live in a RateWindowStore. MemoryRateWindowStore serves a single
process; RedisRateWindowStore shares windows across workers using an atomic
INCR + EXPIRE transaction. If the store cannot be reached the governor applies
the budget's failure policy instead of silently disabling the throttle on
brute-force sensitive routes.

The governor is process-wide state with an explicit lifecycle:
init_rate_governor() on startup, get_rate_governor() per request and
reset_rate_governor() in tests or on shutdown.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


class RouteClass(str, Enum):
    """Budget classes a route can belong to."""

    AUTH = "auth"
    REGISTER = "register"
    PASSWORD_RESET = "password_reset"
    DEFAULT = "default"


@dataclass(frozen=True)
class RateBudget:
    """Window length, max count and failure policy for one route class."""

    limit: int
    window_seconds: int
    failures_only: bool = False
    fail_closed: bool = False


@dataclass(frozen=True)
class RateDecision:
    """Outcome of an admission check."""

    allowed: bool
    retry_after_seconds: int = 0
    count: int = 0


@dataclass
class RateWindow:
    """Counter for one (key, route class) in the current window."""

    key: str
    route_class: RouteClass
    window_start: float
    count: int = 0


class RateStoreUnavailable(Exception):
    """Raised by a store when its backend cannot be reached."""


def budgets_from_settings(config: Settings) -> dict[RouteClass, RateBudget]:
    """Build the per-class budgets from configuration."""
    return {
        RouteClass.AUTH: RateBudget(
            limit=config.rate_limit_auth_max,
            window_seconds=config.rate_limit_auth_window,
            failures_only=True,
            fail_closed=True,
        ),
        RouteClass.REGISTER: RateBudget(
            limit=config.rate_limit_register_max,
            window_seconds=config.rate_limit_register_window,
        ),
        RouteClass.PASSWORD_RESET: RateBudget(
            limit=config.rate_limit_password_reset_max,
            window_seconds=config.rate_limit_password_reset_window,
            fail_closed=True,
        ),
        RouteClass.DEFAULT: RateBudget(
            limit=config.rate_limit_default_max,
            window_seconds=config.rate_limit_default_window,
        ),
    }


class RateWindowStore(Protocol):
    """Counter storage used by the governor."""

    async def increment(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        """Atomically add one to the current window and return the new count."""
        ...

    async def current(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        """Return the count of the current window without changing it."""
        ...


class MemoryRateWindowStore:
    """
    In-process window counters.

    Note: counters are per process and are lost on restart; that under-count is
    accepted for a throttle.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._windows: dict[tuple[str, RouteClass], RateWindow] = {}
        self._lock = asyncio.Lock()

    def _window_start(self, window_seconds: int) -> float:
        now = self._clock()
        return now - (now % window_seconds)

    async def increment(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        start = self._window_start(window_seconds)
        async with self._lock:
            window = self._windows.get((key, route_class))
            if window is None or window.window_start != start:
                window = RateWindow(key=key, route_class=route_class, window_start=start)
                self._windows[(key, route_class)] = window
            window.count += 1
            return window.count

    async def current(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        start = self._window_start(window_seconds)
        async with self._lock:
            window = self._windows.get((key, route_class))
            if window is None or window.window_start != start:
                return 0
            return window.count

    async def prune(self, budgets: dict[RouteClass, RateBudget]) -> int:
        """Drop windows that have ended. Returns the number removed."""
        now = self._clock()
        async with self._lock:
            expired = [
                window_key
                for window_key, window in self._windows.items()
                if window.window_start + budgets[window.route_class].window_seconds <= now
            ]
            for window_key in expired:
                del self._windows[window_key]
        return len(expired)

    async def reset(self) -> None:
        async with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateWindowStore:
    """Window counters shared through Redis."""

    def __init__(self, client: Redis, clock=time.time):
        self._client = client
        self._clock = clock

    def _window_key(self, key: str, route_class: RouteClass, window_seconds: int) -> str:
        window_index = int(self._clock() // window_seconds)
        return f"rate_limit:{route_class.value}:{key}:{window_index}"

    async def increment(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        redis_key = self._window_key(key, route_class, window_seconds)
        try:
            # MULTI/EXEC so the increment and its expiry land together
            pipe = self._client.pipeline(transaction=True)
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds)
            results = await pipe.execute()
        except RedisError as e:
            raise RateStoreUnavailable(str(e)) from e
        return int(results[0])

    async def current(self, key: str, route_class: RouteClass, window_seconds: int) -> int:
        redis_key = self._window_key(key, route_class, window_seconds)
        try:
            value = await self._client.get(redis_key)
        except RedisError as e:
            raise RateStoreUnavailable(str(e)) from e
        return int(value) if value else 0


class RateGovernor:
    """Admits or denies requests against per-class budgets."""

    def __init__(self, store: RateWindowStore, budgets: dict[RouteClass, RateBudget]):
        self.store = store
        self.budgets = budgets

    def budget_for(self, route_class: RouteClass) -> RateBudget:
        return self.budgets[route_class]

    def _on_store_failure(self, route_class: RouteClass, error: Exception) -> RateDecision:
        budget = self.budgets[route_class]
        if budget.fail_closed:
            logger.error(
                f"Rate limit store unavailable, failing closed for {route_class.value}: {error}"
            )
            return RateDecision(allowed=False, retry_after_seconds=budget.window_seconds)
        logger.warning(
            f"Rate limit store unavailable, failing open for {route_class.value}: {error}"
        )
        return RateDecision(allowed=True)

    async def admit(self, identity_key: str, route_class: RouteClass) -> RateDecision:
        """
        Check (and, for counted classes, consume) one unit of budget.

        Args:
            identity_key: Caller identity, usually the client IP
            route_class: Budget class of the route

        Returns:
            RateDecision; when denied, retry_after_seconds is the window length
        """
        budget = self.budgets[route_class]
        try:
            if budget.failures_only:
                count = await self.store.current(identity_key, route_class, budget.window_seconds)
                allowed = count < budget.limit
            else:
                count = await self.store.increment(
                    identity_key, route_class, budget.window_seconds
                )
                allowed = count <= budget.limit
        except RateStoreUnavailable as e:
            return self._on_store_failure(route_class, e)

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {identity_key} on {route_class.value}: "
                f"{budget.limit}/{budget.window_seconds}s"
            )
            return RateDecision(
                allowed=False, retry_after_seconds=budget.window_seconds, count=count
            )
        return RateDecision(allowed=True, count=count)

    async def register_failure(self, identity_key: str, route_class: RouteClass) -> int:
        """Count a failed attempt on a failures-only class. Returns the new count."""
        budget = self.budgets[route_class]
        try:
            return await self.store.increment(identity_key, route_class, budget.window_seconds)
        except RateStoreUnavailable as e:
            logger.error(f"Could not record failed attempt for {route_class.value}: {e}")
            return budget.limit


# Process-wide governor
_governor: RateGovernor | None = None


def init_rate_governor(
    redis_client: Redis | None = None,
    config: Settings = settings,
) -> RateGovernor:
    """Create the process-wide governor. Uses Redis when configured and connected."""
    global _governor
    store: RateWindowStore
    if config.rate_limit_backend == "redis" and redis_client is not None:
        store = RedisRateWindowStore(redis_client)
        logger.info("Rate governor using Redis window store")
    else:
        store = MemoryRateWindowStore()
        logger.info("Rate governor using in-memory window store")
    _governor = RateGovernor(store, budgets_from_settings(config))
    return _governor


def get_rate_governor() -> RateGovernor:
    """Return the process-wide governor, creating an in-memory one if needed."""
    if _governor is None:
        return init_rate_governor()
    return _governor


def reset_rate_governor() -> None:
    """Discard the process-wide governor and its counters."""
    global _governor
    _governor = None


async def prune_rate_windows() -> int:
    """Remove ended windows from the in-memory store (scheduled job)."""
    governor = get_rate_governor()
    if isinstance(governor.store, MemoryRateWindowStore):
        removed = await governor.store.prune(governor.budgets)
        logger.info(f"Pruned {removed} expired rate windows")
        return removed
    return 0


__all__ = [
    "RouteClass",
    "RateBudget",
    "RateDecision",
    "RateWindow",
    "RateStoreUnavailable",
    "RateWindowStore",
    "MemoryRateWindowStore",
    "RedisRateWindowStore",
    "RateGovernor",
    "budgets_from_settings",
    "init_rate_governor",
    "get_rate_governor",
    "reset_rate_governor",
    "prune_rate_windows",
]
