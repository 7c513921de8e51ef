"""Sliding-window rate limiter keyed by client identifier.

Each identifier keeps the timestamps of its admitted requests.  A check
drops timestamps that have fallen out of the window and admits the request
if fewer than ``max_requests`` remain.  Histories are pruned only when their
identifier is checked again; identifiers are never forgotten, so memory
grows with the number of distinct callers over the process lifetime.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Per-identifier admission gate.

    Args:
        clock: Millisecond clock, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = _monotonic_ms) -> None:
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def check_limit(self, identifier: str, max_requests: int, window_ms: float) -> bool:
        """Record and admit a request from *identifier*, or refuse it.

        Returns:
            ``True`` if fewer than *max_requests* requests were admitted in the
            trailing *window_ms*; the request is then recorded.  ``False``
            otherwise, and nothing is recorded.
        """
        with self._lock:
            now = self._clock()
            recent = [t for t in self._requests.get(identifier, ()) if now - t < window_ms]
            if len(recent) >= max_requests:
                self._requests[identifier] = recent
                logger.debug(
                    "Refusing %s: %d requests in the last %sms", identifier, len(recent), window_ms
                )
                return False
            recent.append(now)
            self._requests[identifier] = recent
            return True

    def history(self, identifier: str) -> list[float]:
        """Copy of the recorded timestamps for *identifier* (unpruned)."""
        with self._lock:
            return list(self._requests.get(identifier, ()))
