"""In-process key/value cache with per-entry expiry and a size cap."""

import threading
import time
from collections.abc import Callable
from typing import Any

DEFAULT_TTL = 300.0
DEFAULT_MAX_ENTRIES = 1000


class TTLCache:
    """Expired entries are dropped on lookup and whenever a write finds the
    cache full; if it is still full, the oldest write is evicted."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def lookup(self, key: str) -> tuple[bool, Any]:
        """Return (hit, value); expired entries count as misses and are dropped."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return False, None
            return True, value

    def get(self, key: str, default: Any = None) -> Any:
        hit, value = self.lookup(key)
        return value if hit else default

    def _prune(self) -> None:
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            # Re-insert so dict order tracks write age
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_entries:
                self._prune()
            while len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (self._clock() + (ttl if ttl is not None else self.default_ttl), value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._prune()
            return len(self._entries)
