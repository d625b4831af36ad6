"""
Unit tests for the rate governor and its window stores.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.config import settings
from app.core.rate_limit import (
    MemoryRateWindowStore,
    RateBudget,
    RateGovernor,
    RateStoreUnavailable,
    RedisRateWindowStore,
    RouteClass,
    budgets_from_settings,
    get_rate_governor,
    init_rate_governor,
    prune_rate_windows,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def governor(clock):
    return RateGovernor(MemoryRateWindowStore(clock=clock), budgets_from_settings(settings))


class TestBudgets:
    """Tests for per-class budget configuration."""

    def test_login_budget(self):
        budget = budgets_from_settings(settings)[RouteClass.AUTH]
        assert budget.limit == 5
        assert budget.window_seconds == 900
        assert budget.failures_only is True
        assert budget.fail_closed is True

    def test_default_budget_fails_open(self):
        budget = budgets_from_settings(settings)[RouteClass.DEFAULT]
        assert budget.fail_closed is False
        assert budget.failures_only is False


class TestRateGovernor:
    """Tests for admission decisions."""

    @pytest.mark.asyncio
    async def test_sixth_failed_login_is_denied(self, governor):
        for _ in range(5):
            decision = await governor.admit("10.0.0.1", RouteClass.AUTH)
            assert decision.allowed
            await governor.register_failure("10.0.0.1", RouteClass.AUTH)

        decision = await governor.admit("10.0.0.1", RouteClass.AUTH)
        assert decision.allowed is False
        assert decision.retry_after_seconds == 900

    @pytest.mark.asyncio
    async def test_successful_logins_do_not_count(self, governor):
        for _ in range(20):
            decision = await governor.admit("10.0.0.1", RouteClass.AUTH)
            assert decision.allowed

    @pytest.mark.asyncio
    async def test_counted_class_denies_past_limit(self, clock):
        budgets = {RouteClass.DEFAULT: RateBudget(limit=3, window_seconds=60)}
        governor = RateGovernor(MemoryRateWindowStore(clock=clock), budgets)

        results = [await governor.admit("k", RouteClass.DEFAULT) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[-1].retry_after_seconds == 60

    @pytest.mark.asyncio
    async def test_window_rolls_over(self, clock):
        budgets = {RouteClass.DEFAULT: RateBudget(limit=1, window_seconds=60)}
        governor = RateGovernor(MemoryRateWindowStore(clock=clock), budgets)

        assert (await governor.admit("k", RouteClass.DEFAULT)).allowed
        assert not (await governor.admit("k", RouteClass.DEFAULT)).allowed

        clock.now += 60
        assert (await governor.admit("k", RouteClass.DEFAULT)).allowed

    @pytest.mark.asyncio
    async def test_keys_and_classes_are_independent(self, clock):
        budgets = {
            RouteClass.DEFAULT: RateBudget(limit=1, window_seconds=60),
            RouteClass.REGISTER: RateBudget(limit=1, window_seconds=60),
        }
        governor = RateGovernor(MemoryRateWindowStore(clock=clock), budgets)

        assert (await governor.admit("a", RouteClass.DEFAULT)).allowed
        assert (await governor.admit("b", RouteClass.DEFAULT)).allowed
        assert (await governor.admit("a", RouteClass.REGISTER)).allowed
        assert not (await governor.admit("a", RouteClass.DEFAULT)).allowed

    @pytest.mark.asyncio
    async def test_store_failure_fails_closed_for_auth(self):
        store = AsyncMock()
        store.current.side_effect = RateStoreUnavailable("down")
        governor = RateGovernor(store, budgets_from_settings(settings))

        decision = await governor.admit("k", RouteClass.AUTH)

        assert decision.allowed is False
        assert decision.retry_after_seconds == 900

    @pytest.mark.asyncio
    async def test_store_failure_fails_open_for_default(self):
        store = AsyncMock()
        store.increment.side_effect = RateStoreUnavailable("down")
        governor = RateGovernor(store, budgets_from_settings(settings))

        decision = await governor.admit("k", RouteClass.DEFAULT)

        assert decision.allowed is True


class TestMemoryRateWindowStore:
    """Tests for in-process window bookkeeping."""

    @pytest.mark.asyncio
    async def test_prune_drops_ended_windows(self, clock):
        store = MemoryRateWindowStore(clock=clock)
        budgets = {RouteClass.DEFAULT: RateBudget(limit=10, window_seconds=60)}

        await store.increment("a", RouteClass.DEFAULT, 60)
        await store.increment("b", RouteClass.DEFAULT, 60)
        assert len(store) == 2

        assert await store.prune(budgets) == 0
        clock.now += 120
        assert await store.prune(budgets) == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_current_does_not_increment(self, clock):
        store = MemoryRateWindowStore(clock=clock)
        await store.increment("a", RouteClass.AUTH, 900)

        assert await store.current("a", RouteClass.AUTH, 900) == 1
        assert await store.current("a", RouteClass.AUTH, 900) == 1


class TestRedisRateWindowStore:
    """Tests for the shared Redis store."""

    @pytest.mark.asyncio
    async def test_increment_uses_transaction(self):
        client = MagicMock()
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[3, True])
        client.pipeline.return_value = pipe
        store = RedisRateWindowStore(client, clock=lambda: 1800.0)

        count = await store.increment("10.0.0.1", RouteClass.AUTH, 900)

        assert count == 3
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("rate_limit:auth:10.0.0.1:2")
        pipe.expire.assert_called_once_with("rate_limit:auth:10.0.0.1:2", 900)

    @pytest.mark.asyncio
    async def test_redis_errors_become_store_unavailable(self):
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        store = RedisRateWindowStore(client)

        with pytest.raises(RateStoreUnavailable):
            await store.current("k", RouteClass.AUTH, 900)


class TestGovernorLifecycle:
    """Tests for the process-wide governor."""

    def test_memory_backend_without_redis(self):
        governor = init_rate_governor(None)
        assert isinstance(governor.store, MemoryRateWindowStore)
        assert get_rate_governor() is governor

    def test_lazy_governor(self):
        assert isinstance(get_rate_governor().store, MemoryRateWindowStore)

    @pytest.mark.asyncio
    async def test_prune_job_runs_on_memory_store(self):
        governor = get_rate_governor()
        await governor.admit("k", RouteClass.DEFAULT)

        removed = await prune_rate_windows()

        assert removed == 0
        assert len(governor.store) == 1
