"""Request rate limiting.

Route dependencies only see the :class:`RateLimiter` protocol, so the
in-process fixed-window counter can be swapped for a shared store without
touching the handlers. The in-process counter is not shared across replicas.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .config import parse_rate_limit
from .logging import get_logger


logger = get_logger("core.rate_limiter")


class RateLimiter(Protocol):
    """Capability check: may this key make another request right now?"""

    def allow(self, key: str) -> bool: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """
    Fixed-window counter kept in process memory.

    The first request for a key opens a window of ``window_seconds``; up to
    ``max_requests`` requests are allowed until the window expires. Expired
    windows are dropped whenever a new one opens.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Requests allowed per window
            window_seconds: Window length
            clock: Monotonic time source (injectable for tests)
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._drop_expired(now)
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True

            window.count += 1
            if window.count > self.max_requests:
                logger.debug(f"Rate limit exceeded for {key}")
                return False
            return True

    def _drop_expired(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, w in self._windows.items() if now >= w.reset_at]
        for key in expired:
            del self._windows[key]

    def tracked_keys(self) -> int:
        """Number of keys currently holding a window."""
        with self._lock:
            return len(self._windows)

    def reset(self, key: str | None = None) -> None:
        """Clear one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)


class AllowAllRateLimiter:
    """Limiter used when rate limiting is disabled."""

    def allow(self, key: str) -> bool:
        return True


def create_rate_limiter(limit: str, enabled: bool = True) -> RateLimiter:
    """Build a limiter from a ``"<count>/<period>"`` setting."""
    if not enabled:
        return AllowAllRateLimiter()
    max_requests, window_seconds = parse_rate_limit(limit)
    return FixedWindowRateLimiter(max_requests, window_seconds)
