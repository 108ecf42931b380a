from __future__ import annotations

from time import monotonic
from typing import Any, Callable, Dict, Hashable, Optional, Tuple
import threading


class TTLCache:
    """Small in-memory TTL cache.

    - Capacity-bounded; entries closest to expiry are evicted first.
    - Thread-safe using a simple lock.
    - Expired entries are dropped on read and on every write.
    """

    def __init__(self, max_items: int = 256, clock: Callable[[], float] = monotonic) -> None:
        self._data: Dict[Hashable, Tuple[float, Any]] = {}
        self._max = max_items
        self._clock = clock
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _purge_locked(self) -> None:
        now = self._clock()
        for key in [k for k, (exp, _) in self._data.items() if exp <= now]:
            del self._data[key]
        if len(self._data) > self._max:
            over = len(self._data) - self._max
            for key, _ in sorted(self._data.items(), key=lambda kv: kv[1][0])[:over]:
                del self._data[key]

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            exp, value = item
            if exp <= self._clock():
                del self._data[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._data[key] = (self._clock() + float(ttl_seconds), value)
            self._purge_locked()

    def clear(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._data.clear()
