"""In-process TTL + LRU cache.

Entries expire a fixed time after they were last *written*; reads refresh an
entry's recency but never its expiry.  Expiry is enforced lazily on read
(there is no background sweeper), and capacity is enforced on write by
evicting the least-recently-used key.

One instance is shared by every request, so all access goes through a lock.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, NamedTuple, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class _Entry(NamedTuple):
    value: object
    expires_at: float


class TTLCache(Generic[K, V]):
    """Bounded mapping whose entries expire ``ttl_ms`` after insertion/refresh.

    Args:
        ttl_ms: Lifetime of an entry in milliseconds.
        max_size: Maximum number of entries kept.
        clock: Millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        ttl_ms: float,
        max_size: int = 100,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.ttl_ms = ttl_ms
        self.max_size = max_size
        self._clock = clock
        # Ordered oldest → most recently used.
        self._entries: "OrderedDict[K, _Entry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: K) -> Optional[V]:
        """Return the cached value, or ``None`` if missing or expired.

        An expired entry is removed as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value  # type: ignore[return-value]

    def set(self, key: K, value: V) -> None:
        """Store *value*, resetting its expiry and marking it most recently used."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value, self._clock() + self.ttl_ms)

    def delete(self, key: K) -> bool:
        """Remove *key*; return ``True`` if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        # Presence check only; does not touch recency or evict.
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[K]:
        """Snapshot of the keys, least recently used first."""
        with self._lock:
            return list(self._entries)
