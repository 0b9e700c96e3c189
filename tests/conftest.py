from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

import pytest

from core.access import (
    AccessPipeline,
    ConcurrencyGovernor,
    RateLimiter,
    ResponseCache,
    build_cache_key,
)
from core.domain.outcome import RequestOutcome


class FakeClock:
    """Virtual monotonic clock; ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.t = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.t

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += max(0.0, seconds)
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeTransport:
    """In-memory transport that counts calls and tracks overlap.

    ``responses`` maps an endpoint (or URL) to a value, an exception instance,
    or a callable returning either. When ``gate`` is set every call blocks on
    it, which keeps calls in flight until the test releases them.
    """

    def __init__(
        self,
        responses: Mapping[str, Any] | None = None,
        *,
        hold: bool = False,
        yields: int = 3,
    ) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.active = 0
        self.max_active = 0
        self.hold = hold
        self.yields = yields
        self._gate: asyncio.Event | None = None

    @property
    def gate(self) -> asyncio.Event:
        if self._gate is None:
            self._gate = asyncio.Event()
        return self._gate

    def release(self) -> None:
        self.gate.set()

    async def _respond(self, key: str, lookup: str) -> Any:
        self.calls.append(key)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.hold:
                await self.gate.wait()
            for _ in range(self.yields):
                await asyncio.sleep(0)
            if lookup not in self.responses:
                raise AssertionError(f"unexpected request: {lookup}")
            value = self.responses[lookup]
            if callable(value) and not isinstance(value, type):
                value = value()
            if isinstance(value, BaseException):
                raise value
            return value
        finally:
            self.active -= 1
            self.completed.append(key)

    async def perform(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._respond(build_cache_key(endpoint, params), endpoint)

    async def perform_bytes(self, url: str) -> bytes:
        return await self._respond(url, url)


class MemoryRecorder:
    def __init__(self) -> None:
        self.outcomes: list[RequestOutcome] = []
        self.notes: list[str] = []

    def record(self, outcome: RequestOutcome) -> None:
        self.outcomes.append(outcome)

    def note(self, line: str) -> None:
        self.notes.append(line)


def make_pipeline(
    transport: Any,
    *,
    clock: FakeClock | None = None,
    rate_limit: int = 600,
    max_inflight: int = 4,
    max_entries: int = 32,
    ttl: float | None = 300,
    recorder: MemoryRecorder | None = None,
) -> AccessPipeline:
    clock = clock or FakeClock()
    return AccessPipeline(
        transport=transport,
        cache=ResponseCache(max_entries=max_entries, ttl_seconds=ttl, clock=clock),
        limiter=RateLimiter(rate_limit, clock=clock),
        governor=ConcurrencyGovernor(max_inflight),
        recorder=recorder or MemoryRecorder(),
    )


def run_async(coro):
    return asyncio.run(coro)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> MemoryRecorder:
    return MemoryRecorder()


@pytest.fixture
def pipeline_factory() -> Callable[..., AccessPipeline]:
    return make_pipeline
