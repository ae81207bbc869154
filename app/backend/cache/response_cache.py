"""
Thread-safe in-memory TTL cache for API responses.

Memoizes GET payloads so repeated catalog reads skip the product store.
Entries expire two ways: lazily, when a read finds them older than their
TTL, and eagerly, through a periodic sweep that runs from ``set`` and drops
every stale entry at once. Either path may remove an entry first; the other
is then a no-op.
"""
import time
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple

_SWEEP_INTERVAL_SECONDS = 60


class _Miss:
    """Sentinel returned by ``ResponseCache.get`` for absent or stale keys."""

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISS"


MISS = _Miss()


class ResponseCache:
    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = _SWEEP_INTERVAL_SECONDS,
    ):
        # key -> (value, stored_at, ttl seconds)
        self._store: "OrderedDict[str, Tuple[Any, float, float]]" = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def _is_stale(self, entry: Tuple[Any, float, float], now: float) -> bool:
        _, stored_at, ttl = entry
        return now - stored_at >= ttl

    def _sweep_locked(self, now: float):
        stale = [k for k, e in self._store.items() if self._is_stale(e, now)]
        for key in stale:
            del self._store[key]
        self._last_sweep = now

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return MISS
            if self._is_stale(entry, self._clock()):
                del self._store[key]
                return MISS
            return entry[0]

    def set(self, key: str, value: Any, ttl_ms: float):
        """
        Stores ``value`` under ``key`` for ``ttl_ms`` milliseconds, replacing
        any previous entry. A non-positive TTL stores nothing.
        """
        if ttl_ms <= 0:
            return
        now = self._clock()

        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)
            self._store.pop(key, None)
            self._store[key] = (value, now, ttl_ms / 1000.0)
            if self._max_entries and len(self._store) > self._max_entries:
                self._store.popitem(last=False)

    def sweep(self):
        """Drop every stale entry now."""
        with self._lock:
            self._sweep_locked(self._clock())

    def clear(self):
        with self._lock:
            self._store.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            self._sweep_locked(self._clock())
            keys: List[str] = list(self._store.keys())
            return {"count": len(keys), "keys": keys}

    def __len__(self):
        return self.stats()["count"]
