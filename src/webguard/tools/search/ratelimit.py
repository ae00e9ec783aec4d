"""Fixed-window rate limiting keyed by caller identity."""

import asyncio
import threading
import time
from collections.abc import Callable
from typing import Protocol

from webguard.logging import get_logger
from webguard.tools.search.models import RateWindow

logger = get_logger("webguard.tools.search.ratelimit")

Clock = Callable[[], float]


class Purgeable(Protocol):
    def purge_expired(self) -> int: ...


class RateLimiter:
    """Counts requests per identity in fixed windows.

    An identity gets ``limit`` requests per window. The first request after
    a window ends starts a new one with a count of 1. Windows are kept in a
    process-local map guarded by a lock, so the check and the update happen
    as one step even when callers race on the same identity.
    """

    def __init__(self, limit: int = 30, window: float = 60.0, clock: Clock | None = None):
        """Initialize the rate limiter.

        Args:
            limit: Requests allowed per identity per window
            window: Window length in seconds
            clock: Monotonic time source (time.monotonic by default)
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.limit = limit
        self.window = window
        self._clock = clock or time.monotonic
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def allow(self, identity: str) -> bool:
        """Record a request for identity and report whether it is allowed.

        Args:
            identity: User id or client address

        Returns:
            bool: True if the request fits in the current window
        """
        with self._lock:
            now = self._clock()
            entry = self._windows.get(identity)

            if entry is None or now >= entry.reset_at:
                self._windows[identity] = RateWindow(count=1, reset_at=now + self.window)
                return True

            if entry.count >= self.limit:
                logger.warning(f"Rate limit exceeded for {identity}")
                return False

            entry.count += 1
            return True

    def retry_after(self, identity: str) -> float:
        """Seconds until identity's current window resets (0 if none is active)."""
        with self._lock:
            entry = self._windows.get(identity)
            if entry is None:
                return 0.0
            return max(0.0, entry.reset_at - self._clock())

    def purge_expired(self) -> int:
        """Drop windows that have already ended.

        Returns:
            int: Number of windows removed
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._windows.items() if entry.reset_at <= now]
            for key in stale:
                del self._windows[key]

        if stale:
            logger.debug(f"Purged {len(stale)} expired rate limit windows")
        return len(stale)

    def __len__(self) -> int:
        return len(self._windows)


async def run_sweeper(*targets: Purgeable, interval: float = 60.0) -> None:
    """Periodically call ``purge_expired()`` on each target until cancelled.

    Only bounds memory; limits and cache lookups are correct without it.

    Args:
        targets: Objects with a purge_expired() method (rate limiters, caches)
        interval: Seconds between sweeps
    """
    while True:
        await asyncio.sleep(interval)
        for target in targets:
            target.purge_expired()
