"""Concurrency governor: at most N network calls in flight.

Slots are handed over directly from the releasing call to the oldest waiter,
so a burst of newcomers can never overtake a call that is already queued.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from core.errors import ConfigurationError


class ConcurrencyGovernor:
    def __init__(self, max_inflight: int) -> None:
        if max_inflight <= 0:
            raise ConfigurationError(f"max_inflight must be a positive integer, got {max_inflight!r}")
        self._capacity = int(max_inflight)
        self._active = 0
        self._peak = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        """Highest number of simultaneously held slots seen so far."""

        return self._peak

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one execution slot for the duration of the block.

        The slot is released on success, on error and on cancellation.
        """

        await self._acquire()
        try:
            yield
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._active < self._capacity and not self.waiting:
            self._grant()
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The slot was handed over just before the cancellation landed.
                self._release()
            else:
                with suppress(ValueError):
                    self._waiters.remove(fut)
            raise

    def _grant(self) -> None:
        self._active += 1
        self._peak = max(self._peak, self._active)

    def _release(self) -> None:
        self._active -= 1
        while self._waiters:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._grant()
            fut.set_result(None)
            return
