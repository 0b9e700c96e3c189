"""Lookup pipeline: cache → deduplicator → rate limiter → governor → transport.

A lookup that hits the response cache returns immediately. A miss joins (or
starts) the single in-flight call for its key; that call waits for admission,
holds a governor slot only while the transport runs, records its outcome and
populates the cache before the result is fanned out to every waiter.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from core.access.cache import ResponseCache, build_cache_key
from core.access.concurrency import ConcurrencyGovernor
from core.access.dedup import RequestDeduplicator
from core.access.rate_limiter import RateLimiter
from core.domain.outcome import RequestOutcome
from core.errors import TransportError
from core.interfaces.transport import RequestRecorder, Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PipelineStats:
    network_calls: int = 0
    cache_hits: int = 0
    coalesced: int = 0
    failures: int = 0


def _outcome_code(exc: BaseException) -> str:
    if isinstance(exc, TransportError):
        return exc.outcome
    return "error"


class AccessPipeline:
    """Shared entry point for every network lookup of the process."""

    def __init__(
        self,
        *,
        transport: Transport,
        cache: ResponseCache[Any],
        limiter: RateLimiter,
        governor: ConcurrencyGovernor,
        recorder: RequestRecorder,
        deduplicator: RequestDeduplicator | None = None,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.limiter = limiter
        self.governor = governor
        self.recorder = recorder
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.stats = PipelineStats()

    async def get_json(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        *,
        parse: Callable[[Any], T] | None = None,
    ) -> T:
        """Look up a JSON endpoint; ``parse`` turns the body into the cached value."""

        key = build_cache_key(endpoint, params)

        async def call() -> Any:
            return await self.transport.perform(endpoint, params)

        async def finalize(body: Any) -> Any:
            return parse(body) if parse is not None else body

        return await self.lookup(key, call, finalize, cache=self.cache)

    async def get_bytes(
        self,
        url: str,
        *,
        finalize: Callable[[bytes], Awaitable[R]],
        cache: ResponseCache[Any] | None = None,
    ) -> R:
        """Fetch raw bytes of an absolute URL through the same admission path."""

        async def call() -> bytes:
            return await self.transport.perform_bytes(url)

        return await self.lookup(url, call, finalize, cache=cache)

    async def lookup(
        self,
        key: str,
        call: Callable[[], Awaitable[Any]],
        finalize: Callable[[Any], Awaitable[T]],
        *,
        cache: ResponseCache[Any] | None,
    ) -> T:
        if cache is not None:
            cached = cache.get(key)
            if cached is not None:
                self.stats.cache_hits += 1
                return cached

        if key in self.deduplicator:
            self.stats.coalesced += 1

        async def load() -> T:
            return await self._load(key, call, finalize, cache)

        return await self.deduplicator.run(key, load)

    async def _load(
        self,
        key: str,
        call: Callable[[], Awaitable[Any]],
        finalize: Callable[[Any], Awaitable[T]],
        cache: ResponseCache[Any] | None,
    ) -> T:
        waited = await self.limiter.admit()
        if waited > 0:
            self.recorder.note(f"rate_limit_wait_ms={int(waited * 1000)}")

        async with self.governor.slot():
            self.stats.network_calls += 1
            started = time.perf_counter()
            try:
                raw = await call()
            except Exception as exc:
                self._fail(key, started, exc)
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000

        try:
            value = await finalize(raw)
        except Exception as exc:
            self._fail(key, started, exc)
            raise

        self.recorder.record(RequestOutcome(endpoint=key, latency_ms=elapsed_ms, outcome="ok"))
        if cache is not None:
            cache.put(key, value)
        return value

    def _fail(self, key: str, started: float, exc: BaseException) -> None:
        self.stats.failures += 1
        elapsed_ms = (time.perf_counter() - started) * 1000
        code = _outcome_code(exc)
        logger.debug("lookup %s failed: %s (%s)", key, code, exc)
        self.recorder.record(RequestOutcome(endpoint=key, latency_ms=elapsed_ms, outcome=code))
