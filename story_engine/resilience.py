"""Circuit breaker and fallback handling for datastore and model calls.

CircuitBreaker
    CLOSED    calls pass through; failures are counted
    OPEN      calls fail fast with CircuitOpenError until reset_timeout passes
    HALF_OPEN one trial call; success closes the circuit, failure re-opens it

The circuit only opens once the failure count reaches error_threshold and
at least volume_threshold calls were seen since the last reset. Failures
older than monitoring_period are forgotten while the circuit is closed.

FallbackManager wraps an operation with a recovery strategy (cached value,
default value, alternative service, retry queue, fail fast, silent fail).
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any

from story_engine.cache import TTLCache

logger = logging.getLogger(__name__)


class CircuitState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(RuntimeError):
    """Raised when a call is rejected because the circuit is open."""


class CircuitBreaker:
    """Async circuit breaker. Times are in seconds.

    Args:
        name:              Label used in logs and stats.
        timeout:           Per-call timeout; a timeout counts as a failure.
        error_threshold:   Failures needed to open the circuit.
        reset_timeout:     How long the circuit stays open before a trial call.
        monitoring_period: Failures older than this are forgotten while CLOSED.
        volume_threshold:  Minimum calls in the window before opening.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 5.0,
        error_threshold: int = 5,
        reset_timeout: float = 60.0,
        monitoring_period: float = 60.0,
        volume_threshold: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.timeout = timeout
        self.error_threshold = error_threshold
        self.reset_timeout = reset_timeout
        self.monitoring_period = monitoring_period
        self.volume_threshold = volume_threshold
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.total_requests = 0
        self.total_failures = 0
        self.last_failure_time: float | None = None
        self.next_attempt_time: float | None = None
        self._trial_in_flight = False

    def force_open(self) -> None:
        self.state = CircuitState.OPEN
        self.next_attempt_time = self._clock() + self.reset_timeout
        logger.warning("circuit %s forced open", self.name)

    def force_close(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.next_attempt_time = None
        logger.info("circuit %s forced closed", self.name)

    def _forget_stale_failures(self) -> None:
        if (
            self.state == CircuitState.CLOSED
            and self.last_failure_time is not None
            and self._clock() - self.last_failure_time >= self.monitoring_period
        ):
            self.failure_count = 0

    async def call(self, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Run `fn(*args, **kwargs)` through the breaker."""
        if self.state == CircuitState.OPEN:
            if self.next_attempt_time is not None and self._clock() >= self.next_attempt_time:
                self.state = CircuitState.HALF_OPEN
                logger.info("circuit %s half-open, trying one call", self.name)
            else:
                raise CircuitOpenError(f"Circuit breaker {self.name} is OPEN")

        trial = self.state == CircuitState.HALF_OPEN
        if trial:
            if self._trial_in_flight:
                raise CircuitOpenError(f"Circuit breaker {self.name} is HALF_OPEN, trial call in flight")
            self._trial_in_flight = True

        self._forget_stale_failures()
        self.total_requests += 1
        try:
            result = await asyncio.wait_for(fn(*args, **kwargs), timeout=self.timeout)
        except Exception:
            self._on_failure()
            raise
        else:
            self._on_success()
            return result
        finally:
            if trial:
                self._trial_in_flight = False

    def _on_success(self) -> None:
        self.failure_count = 0
        self.success_count += 1
        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.CLOSED
            self.next_attempt_time = None
            logger.info("circuit %s closed", self.name)

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.total_failures += 1
        self.last_failure_time = self._clock()
        if self.state == CircuitState.HALF_OPEN:
            self._open()
        elif (
            self.failure_count >= self.error_threshold
            and self.total_requests >= self.volume_threshold
        ):
            self._open()

    def _open(self) -> None:
        self.state = CircuitState.OPEN
        self.next_attempt_time = self._clock() + self.reset_timeout
        logger.warning(
            "circuit %s opened after %d failures", self.name, self.failure_count
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "total_requests": self.total_requests,
            "total_failures": self.total_failures,
            "last_failure_time": self.last_failure_time,
            "next_attempt_time": self.next_attempt_time,
        }


# ── Fallbacks ────────────────────────────────────────────


class FallbackStrategy(str, enum.Enum):
    CACHE = "cache"
    DEFAULT_VALUE = "default_value"
    ALTERNATIVE_SERVICE = "alternative_service"
    QUEUE_FOR_RETRY = "queue_for_retry"
    FAIL_FAST = "fail_fast"
    SILENT_FAIL = "silent_fail"


@dataclass
class FallbackOptions:
    strategy: FallbackStrategy
    cache_key: str | None = None
    cache_ttl: float = 300.0
    default_value: Any = None
    alternative: Callable[[], Awaitable[Any]] | None = None
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 5.0


@dataclass
class FallbackResult:
    success: bool
    value: Any = None
    used_fallback: bool = False
    fallback_strategy: FallbackStrategy | None = None
    error: str | None = None
    metadata: dict[str, Any] = dataclass_field(default_factory=dict)


@dataclass
class _RetryEntry:
    key: str
    operation: Callable[[], Awaitable[Any]]
    options: FallbackOptions
    attempts: int = 0
    next_retry_at: float = 0.0
    last_error: str | None = None


class FallbackManager:
    """Runs operations and recovers from their failures per strategy."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.cache = TTLCache(clock=clock)
        self._retry_queue: dict[str, _RetryEntry] = {}

    async def execute(
        self, operation: Callable[[], Awaitable[Any]], options: FallbackOptions
    ) -> FallbackResult:
        try:
            value = await asyncio.wait_for(operation(), timeout=options.timeout)
        except Exception as e:
            logger.warning("operation failed, applying %s: %s", options.strategy.value, e)
            return await self._fallback(operation, options, e)
        if options.strategy == FallbackStrategy.CACHE and options.cache_key:
            self.cache.set(options.cache_key, value, options.cache_ttl)
        return FallbackResult(success=True, value=value)

    async def _fallback(
        self,
        operation: Callable[[], Awaitable[Any]],
        options: FallbackOptions,
        error: Exception,
    ) -> FallbackResult:
        strategy = options.strategy
        message = str(error) or type(error).__name__

        if strategy == FallbackStrategy.CACHE:
            if options.cache_key:
                hit, cached = self.cache.lookup(options.cache_key)
                if hit:
                    return FallbackResult(
                        success=True, value=cached, used_fallback=True,
                        fallback_strategy=strategy, error=message,
                        metadata={"source": "cache"},
                    )
            return FallbackResult(
                success=options.default_value is not None, value=options.default_value,
                used_fallback=True, fallback_strategy=strategy, error=message,
                metadata={"source": "default"},
            )

        if strategy == FallbackStrategy.DEFAULT_VALUE:
            return FallbackResult(
                success=True, value=options.default_value, used_fallback=True,
                fallback_strategy=strategy, error=message,
            )

        if strategy == FallbackStrategy.ALTERNATIVE_SERVICE and options.alternative:
            try:
                value = await asyncio.wait_for(options.alternative(), timeout=options.timeout)
            except Exception as alt_error:
                return FallbackResult(
                    success=False, used_fallback=True, fallback_strategy=strategy,
                    error=f"{message}; alternative failed: {alt_error}",
                )
            return FallbackResult(
                success=True, value=value, used_fallback=True,
                fallback_strategy=strategy, error=message,
            )

        if strategy == FallbackStrategy.QUEUE_FOR_RETRY:
            key = options.cache_key or f"retry-{id(operation)}"
            self._retry_queue[key] = _RetryEntry(
                key=key, operation=operation, options=options,
                attempts=1, next_retry_at=self._clock() + options.retry_delay,
                last_error=message,
            )
            return FallbackResult(
                success=False, used_fallback=True, fallback_strategy=strategy,
                error=message, metadata={"queued": True, "retry_key": key},
            )

        if strategy == FallbackStrategy.SILENT_FAIL:
            return FallbackResult(
                success=True, value=None, used_fallback=True, fallback_strategy=strategy,
                error=message,
            )

        return FallbackResult(success=False, fallback_strategy=strategy, error=message)

    async def process_retry_queue(self) -> dict[str, int]:
        """Retry due entries. Backoff doubles per attempt; gives up at max_retries."""
        now = self._clock()
        succeeded = failed = dropped = 0
        for key, entry in list(self._retry_queue.items()):
            if entry.next_retry_at > now:
                continue
            try:
                await asyncio.wait_for(entry.operation(), timeout=entry.options.timeout)
            except Exception as e:
                entry.attempts += 1
                entry.last_error = str(e)
                if entry.attempts > entry.options.max_retries:
                    del self._retry_queue[key]
                    dropped += 1
                    logger.warning("giving up on %s after %d attempts", key, entry.attempts - 1)
                else:
                    entry.next_retry_at = now + entry.options.retry_delay * 2 ** (entry.attempts - 1)
                    failed += 1
                continue
            del self._retry_queue[key]
            succeeded += 1
            logger.info("retried %s succeeded after %d attempts", key, entry.attempts)
        return {"succeeded": succeeded, "failed": failed, "dropped": dropped}

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_retry_queue_status(self) -> dict[str, Any]:
        return {
            "size": len(self._retry_queue),
            "entries": [
                {
                    "key": e.key,
                    "attempts": e.attempts,
                    "next_retry_in": max(0.0, e.next_retry_at - self._clock()),
                    "last_error": e.last_error,
                }
                for e in self._retry_queue.values()
            ],
        }

    def clear_retry_queue(self) -> None:
        self._retry_queue.clear()
