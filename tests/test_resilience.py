"""Tests for the circuit breaker and fallback manager."""

import asyncio

import pytest

from story_engine.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    FallbackManager,
    FallbackOptions,
    FallbackStrategy,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


async def _ok():
    return "ok"


async def _boom():
    raise ConnectionError("backend down")


# ── Circuit breaker ──────────────────────────────────────


class TestCircuitBreaker:
    def _breaker(self, clock, **kwargs):
        kwargs.setdefault("error_threshold", 2)
        kwargs.setdefault("volume_threshold", 2)
        kwargs.setdefault("reset_timeout", 30)
        return CircuitBreaker("test", clock=clock, **kwargs)

    async def test_passes_through_when_closed(self):
        breaker = self._breaker(FakeClock())
        assert await breaker.call(_ok) == "ok"
        stats = breaker.get_stats()
        assert stats["state"] == "CLOSED"
        assert stats["success_count"] == 1
        assert stats["total_requests"] == 1

    async def test_opens_after_threshold(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(_boom)
        assert breaker.state == CircuitState.OPEN
        assert breaker.next_attempt_time == clock.now + 30

        with pytest.raises(CircuitOpenError):
            await breaker.call(_ok)

    async def test_volume_threshold_keeps_quiet_service_closed(self):
        breaker = self._breaker(FakeClock(), volume_threshold=10)
        for _ in range(3):
            with pytest.raises(ConnectionError):
                await breaker.call(_boom)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 3

    async def test_half_open_success_closes(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        breaker.force_open()
        clock.advance(30)
        assert await breaker.call(_ok) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.next_attempt_time is None

    async def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        breaker.force_open()
        clock.advance(31)
        with pytest.raises(ConnectionError):
            await breaker.call(_boom)
        assert breaker.state == CircuitState.OPEN
        assert breaker.next_attempt_time == clock.now + 30

    async def test_timeout_counts_as_failure(self):
        async def slow():
            await asyncio.sleep(1)

        breaker = self._breaker(FakeClock(), timeout=0.01)
        with pytest.raises(asyncio.TimeoutError):
            await breaker.call(slow)
        assert breaker.failure_count == 1

    async def test_success_resets_failure_count(self):
        breaker = self._breaker(FakeClock(), volume_threshold=10)
        with pytest.raises(ConnectionError):
            await breaker.call(_boom)
        await breaker.call(_ok)
        assert breaker.failure_count == 0

    async def test_stale_failures_are_forgotten(self):
        clock = FakeClock()
        breaker = self._breaker(clock, monitoring_period=60)
        with pytest.raises(ConnectionError):
            await breaker.call(_boom)
        clock.advance(61)
        with pytest.raises(ConnectionError):
            await breaker.call(_boom)
        # the first failure is too old to count
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 1
        assert breaker.total_requests == 2
        assert breaker.get_stats()["total_failures"] == 2

    async def test_slow_failing_backend_still_trips(self):
        clock = FakeClock()
        breaker = self._breaker(clock, error_threshold=5, volume_threshold=10, monitoring_period=60)
        for _ in range(10):
            with pytest.raises(ConnectionError):
                await breaker.call(_boom)
            clock.advance(7)
        assert breaker.state == CircuitState.OPEN

    async def test_half_open_allows_one_trial_call(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        breaker.force_open()
        clock.advance(30)
        release = asyncio.Event()

        async def trial():
            await release.wait()
            return "recovered"

        first = asyncio.create_task(breaker.call(trial))
        await asyncio.sleep(0)
        assert breaker.state == CircuitState.HALF_OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.call(_ok)
        release.set()
        assert await first == "recovered"
        assert breaker.state == CircuitState.CLOSED
        assert await breaker.call(_ok) == "ok"

    def test_force_close_and_reset(self):
        breaker = self._breaker(FakeClock())
        breaker.force_open()
        breaker.force_close()
        assert breaker.state == CircuitState.CLOSED
        breaker.total_requests = 5
        breaker.reset()
        assert breaker.total_requests == 0


# ── Fallback manager ─────────────────────────────────────


class TestFallbackManager:
    async def test_success_is_cached(self):
        manager = FallbackManager(clock=FakeClock())
        result = await manager.execute(_ok, FallbackOptions(FallbackStrategy.CACHE, cache_key="k"))
        assert result.success and result.value == "ok"
        assert not result.used_fallback

        result = await manager.execute(_boom, FallbackOptions(FallbackStrategy.CACHE, cache_key="k"))
        assert result.success
        assert result.value == "ok"
        assert result.used_fallback
        assert result.metadata == {"source": "cache"}
        assert result.error == "backend down"

    async def test_cache_miss_without_default_fails(self):
        manager = FallbackManager(clock=FakeClock())
        result = await manager.execute(_boom, FallbackOptions(FallbackStrategy.CACHE, cache_key="k"))
        assert not result.success
        assert result.metadata == {"source": "default"}

    async def test_cache_expires(self):
        clock = FakeClock()
        manager = FallbackManager(clock=clock)
        await manager.execute(_ok, FallbackOptions(FallbackStrategy.CACHE, cache_key="k", cache_ttl=10))
        clock.advance(11)
        result = await manager.execute(
            _boom, FallbackOptions(FallbackStrategy.CACHE, cache_key="k", default_value=[]),
        )
        assert result.value == []
        assert result.metadata == {"source": "default"}

    async def test_default_value(self):
        manager = FallbackManager()
        result = await manager.execute(
            _boom, FallbackOptions(FallbackStrategy.DEFAULT_VALUE, default_value=0),
        )
        assert result.success and result.value == 0
        assert result.fallback_strategy == FallbackStrategy.DEFAULT_VALUE

    async def test_alternative_service(self):
        async def backup():
            return "backup"

        manager = FallbackManager()
        result = await manager.execute(
            _boom, FallbackOptions(FallbackStrategy.ALTERNATIVE_SERVICE, alternative=backup),
        )
        assert result.success and result.value == "backup"

        result = await manager.execute(
            _boom, FallbackOptions(FallbackStrategy.ALTERNATIVE_SERVICE, alternative=_boom),
        )
        assert not result.success
        assert "alternative failed" in result.error

    async def test_fail_fast_and_silent_fail(self):
        manager = FallbackManager()
        fast = await manager.execute(_boom, FallbackOptions(FallbackStrategy.FAIL_FAST))
        assert not fast.success
        assert not fast.used_fallback

        silent = await manager.execute(_boom, FallbackOptions(FallbackStrategy.SILENT_FAIL))
        assert silent.success
        assert silent.value is None
        assert silent.used_fallback

    async def test_retry_queue_succeeds_when_due(self):
        clock = FakeClock()
        manager = FallbackManager(clock=clock)
        calls = {"n": 0}

        async def flaky():
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConnectionError("down")
            return "stored"

        result = await manager.execute(
            flaky, FallbackOptions(FallbackStrategy.QUEUE_FOR_RETRY, cache_key="memory:1", retry_delay=5),
        )
        assert not result.success
        assert result.metadata == {"queued": True, "retry_key": "memory:1"}
        assert manager.get_retry_queue_status()["size"] == 1

        # not due yet
        assert await manager.process_retry_queue() == {"succeeded": 0, "failed": 0, "dropped": 0}
        clock.advance(5)
        assert await manager.process_retry_queue() == {"succeeded": 1, "failed": 0, "dropped": 0}
        assert manager.get_retry_queue_status()["size"] == 0
        assert len(manager.cache) == 0

    async def test_retry_queue_backs_off_then_drops(self):
        clock = FakeClock()
        manager = FallbackManager(clock=clock)
        await manager.execute(
            _boom,
            FallbackOptions(FallbackStrategy.QUEUE_FOR_RETRY, cache_key="k", max_retries=2, retry_delay=1),
        )
        clock.advance(1)
        assert (await manager.process_retry_queue())["failed"] == 1
        [entry] = manager.get_retry_queue_status()["entries"]
        assert entry["attempts"] == 2
        assert entry["next_retry_in"] == 2

        clock.advance(2)
        assert (await manager.process_retry_queue())["dropped"] == 1
        assert manager.get_retry_queue_status()["size"] == 0

    async def test_clear_retry_queue(self):
        manager = FallbackManager()
        await manager.execute(_boom, FallbackOptions(FallbackStrategy.QUEUE_FOR_RETRY, cache_key="k"))
        manager.clear_retry_queue()
        assert manager.get_retry_queue_status() == {"size": 0, "entries": []}

    async def test_only_cache_strategy_stores_results(self):
        manager = FallbackManager(clock=FakeClock())
        for i in range(1000):
            await manager.execute(_ok, FallbackOptions(FallbackStrategy.QUEUE_FOR_RETRY, cache_key=f"memory:{i}"))
        await manager.execute(_ok, FallbackOptions(FallbackStrategy.SILENT_FAIL, cache_key="trait:1"))
        assert len(manager.cache) == 0
