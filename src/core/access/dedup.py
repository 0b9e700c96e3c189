"""Collapse concurrent cache misses for the same key into one call.

The in-flight map is only touched between awaits, so the check-then-insert
on a key cannot interleave with another lookup on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestDeduplicator:
    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        self.coalesced = 0

    def __contains__(self, key: object) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await the shared call for ``key``, starting it if none is pending.

        Every caller receives the same value, or the same exception instance.
        A caller that goes away does not cancel the shared call.
        """

        task = self._inflight.get(key)
        if task is not None:
            self.coalesced += 1
            logger.debug("coalesced request for %s", key)
        else:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._finish(key, done))
        return await asyncio.shield(task)

    def _finish(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome as retrieved even if every waiter went away.
        if not task.cancelled():
            task.exception()
