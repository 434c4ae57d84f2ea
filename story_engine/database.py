"""Resilient access to the app's backends with health reporting.

Three backends are tracked:
  storage  JSON data directory (required; the app is unhealthy without it)
  vectors  embedding collections
  ollama   model server

Each backend gets its own CircuitBreaker. execute() runs an operation
through the breaker and, on failure, applies a FallbackStrategy that may
serve a cached result or degrade to a default.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from typing import Any

from story_engine import storage
from story_engine.cache import TTLCache
from story_engine.errors import classify_error
from story_engine.llm import OllamaClient
from story_engine.resilience import CircuitBreaker, CircuitState, FallbackManager

logger = logging.getLogger(__name__)

BACKENDS = ("storage", "vectors", "ollama")
REQUIRED_BACKENDS = ("storage",)


class FallbackStrategy(str, enum.Enum):
    CACHE_THEN_ERROR = "cache_then_error"
    CACHE_THEN_FALLBACK = "cache_then_fallback"
    ERROR_IMMEDIATELY = "error_immediately"
    DEGRADE_GRACEFULLY = "degrade_gracefully"


@dataclass
class OperationResult:
    success: bool
    data: Any = None
    error: str | None = None
    from_cache: bool = False
    degraded: bool = False


@dataclass
class HealthStatus:
    status: str  # "healthy" | "degraded" | "unhealthy"
    latency: float | None = None  # milliseconds
    last_checked: str = ""
    details: dict[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DatabaseManager:
    def __init__(self, client: OllamaClient | None = None, cache_ttl: float = 300.0) -> None:
        self.client = client
        self.cache = TTLCache(default_ttl=cache_ttl)
        self.fallbacks = FallbackManager()
        self.breakers: dict[str, CircuitBreaker] = {
            name: CircuitBreaker(name) for name in BACKENDS
        }

    async def execute(
        self,
        backend: str,
        operation: Callable[[], Awaitable[Any]],
        *,
        cache_key: str | None = None,
        strategy: FallbackStrategy = FallbackStrategy.CACHE_THEN_ERROR,
        default: Any = None,
    ) -> OperationResult:
        """Run `operation` against `backend` and apply `strategy` on failure."""
        breaker = self.breakers[backend]
        try:
            data = await breaker.call(operation)
        except Exception as e:
            error = f"{classify_error(e).value}: {e}"
            logger.warning("%s operation failed: %s", backend, error)
            if strategy == FallbackStrategy.ERROR_IMMEDIATELY:
                return OperationResult(success=False, error=error)
            if strategy == FallbackStrategy.DEGRADE_GRACEFULLY:
                return OperationResult(success=True, data=default, error=error, degraded=True)
            if cache_key:
                hit, cached = self.cache.lookup(cache_key)
                if hit:
                    return OperationResult(success=True, data=cached, error=error, from_cache=True)
            if strategy == FallbackStrategy.CACHE_THEN_FALLBACK:
                return OperationResult(success=True, data=default, error=error, degraded=True)
            return OperationResult(success=False, error=error)
        if cache_key:
            self.cache.set(cache_key, data)
        return OperationResult(success=True, data=data)

    def invalidate(self, prefix: str) -> int:
        return self.cache.delete_prefix(prefix)

    # ── Health ───────────────────────────────────────────

    async def _check_storage(self) -> dict[str, Any]:
        root = storage.data_dir()
        probe = root / ".health"
        probe.write_text(storage.now_iso())
        probe.unlink()
        return {"data_dir": str(root)}

    async def _check_vectors(self) -> dict[str, Any]:
        counts = {}
        for path in sorted(storage.vectors_dir().glob("*.json")):
            counts[path.stem] = storage.count_vectors(path.stem)
        return {"collections": counts}

    async def _check_ollama(self) -> dict[str, Any]:
        if self.client is None:
            raise RuntimeError("Ollama client not configured")
        if not await self.client.health_check():
            raise ConnectionError("Ollama is unavailable")
        return {"chat_model": self.client.chat_model}

    async def _check(self, name: str, probe: Callable[[], Awaitable[dict[str, Any]]]) -> HealthStatus:
        breaker = self.breakers[name]
        started = time.perf_counter()
        checked = datetime.now(timezone.utc).isoformat()
        if breaker.state == CircuitState.OPEN:
            return HealthStatus("unhealthy", None, checked, {"circuit": breaker.state.value})
        try:
            details = await asyncio.wait_for(probe(), timeout=breaker.timeout)
        except Exception as e:
            return HealthStatus("unhealthy", None, checked, {
                "error": str(e) or type(e).__name__,
                "error_type": classify_error(e).value,
            })
        latency = round((time.perf_counter() - started) * 1000, 2)
        status = "degraded" if breaker.state == CircuitState.HALF_OPEN else "healthy"
        details["circuit"] = breaker.state.value
        return HealthStatus(status, latency, checked, details)

    async def check_health(self) -> dict[str, HealthStatus]:
        checks = {
            "storage": self._check_storage,
            "vectors": self._check_vectors,
            "ollama": self._check_ollama,
        }
        results = await asyncio.gather(*(self._check(n, p) for n, p in checks.items()))
        return dict(zip(checks, results))

    @staticmethod
    def overall_status(statuses: dict[str, HealthStatus]) -> str:
        """Unhealthy if a required backend is down; degraded if any other is."""
        for name in REQUIRED_BACKENDS:
            if name in statuses and statuses[name].status == "unhealthy":
                return "unhealthy"
        if any(s.status != "healthy" for s in statuses.values()):
            return "degraded"
        return "healthy"

    def metrics(self) -> dict[str, Any]:
        return {
            "circuit_breakers": {n: b.get_stats() for n, b in self.breakers.items()},
            "cache_entries": len(self.cache),
            "retry_queue": self.fallbacks.get_retry_queue_status(),
        }
