"""
Per-client request throttling.

Fixed windows keyed by a caller-supplied identifier. The counter map is
shared by every request thread, so check-and-increment happens under
one lock. Expired windows are swept from the map at most once per window
length while traffic flows, so one-off clients do not accumulate.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from support_bot.config import RateLimitConfig, settings

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    """Allows ``max_requests`` per key in each ``window_sec`` window."""

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or settings.rate_limit
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _expired(self, window: _Window, now: float) -> bool:
        return now - window.started_at >= self.config.window_sec

    def _drop_expired(self, now: float) -> int:
        # caller holds self._lock
        expired = [k for k, w in self._windows.items() if self._expired(w, now)]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        return len(expired)

    def check_and_increment(self, key: str) -> bool:
        """Count one request for ``key``; False when the window is already full."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.config.window_sec:
                dropped = self._drop_expired(now)
                if dropped:
                    logger.debug("Dropped %d expired rate limit windows", dropped)

            window = self._windows.get(key)
            if window is None or self._expired(window, now):
                window = _Window(started_at=now)
                self._windows[key] = window
            if window.count >= self.config.max_requests:
                logger.warning("Rate limit exceeded for client %s", key)
                return False
            window.count += 1
            return True

    def retry_after(self, key: str) -> int:
        """Seconds until the window for ``key`` resets."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0
            remaining = self.config.window_sec - (self._clock() - window.started_at)
        return max(0, int(remaining + 0.999))

    def prune(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)
