"""Client-side admission limiter.

Capacity refills continuously at ``limit / 60`` units per second and is
capped at ``limit``, so unused capacity allows a burst. A ledger of the
admissions granted in the trailing 60 seconds keeps the per-window count at
or below ``limit`` even right after a burst.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from core.access.clock import Clock, MonotonicClock
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
_EPSILON = 1e-9


class RateLimiter:
    """FIFO rate limiter shared by every lookup of the process."""

    def __init__(self, limit_per_minute: int, *, clock: Clock | None = None) -> None:
        if limit_per_minute <= 0:
            raise ConfigurationError(
                f"rate_limit_per_minute must be a positive integer, got {limit_per_minute!r}"
            )
        self._limit = int(limit_per_minute)
        self._refill_per_second = self._limit / WINDOW_SECONDS
        self._clock = clock or MonotonicClock()
        self._tokens = float(self._limit)
        self._updated_at = self._clock.now()
        self._admitted: deque[float] = deque()
        # Waiters queue on the lock in arrival order; the holder sleeps until
        # its slot is available, so admission is first-requested first-served.
        self._lock = asyncio.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def available(self) -> float:
        """Capacity available right now (without consuming it)."""

        now = self._clock.now()
        self._refill(now)
        self._expire(now)
        return min(self._tokens, float(self._limit - len(self._admitted)))

    async def admit(self) -> float:
        """Wait for a slot, consume one unit and return the seconds waited."""

        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock.now()
                self._refill(now)
                self._expire(now)
                wait_s = self._wait_time(now)
                if wait_s <= _EPSILON:
                    self._tokens = max(0.0, self._tokens - 1.0)
                    self._admitted.append(now)
                    if waited > 0:
                        logger.debug("admitted after %.3fs wait", waited)
                    return waited
                await self._clock.sleep(wait_s)
                waited += wait_s

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self._limit), self._tokens + elapsed * self._refill_per_second)
        self._updated_at = now

    def _expire(self, now: float) -> None:
        while self._admitted and self._admitted[0] <= now - WINDOW_SECONDS + _EPSILON:
            self._admitted.popleft()

    def _wait_time(self, now: float) -> float:
        wait_tokens = 0.0
        if self._tokens < 1.0 - _EPSILON:
            wait_tokens = (1.0 - self._tokens) / self._refill_per_second
        wait_window = 0.0
        if len(self._admitted) >= self._limit:
            wait_window = self._admitted[0] + WINDOW_SECONDS - now
        return max(wait_tokens, wait_window)
