"""Time source shared by the limiter and the caches.

Tests swap in a virtual clock whose ``sleep`` advances time instantly.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> float:
        """Monotonic seconds."""

        ...

    async def sleep(self, seconds: float) -> None:
        ...


class MonotonicClock:
    """Wall-independent clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
