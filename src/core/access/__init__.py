"""API access layer: admission control, response caching and request coalescing.

Every structure here is built explicitly at startup and handed to the
components that need it; nothing is a process-wide singleton.
"""

from core.access.cache import (
    CacheEntry,
    EvictionPolicy,
    LeastRecentlyUsed,
    OldestInserted,
    ResponseCache,
    build_cache_key,
)
from core.access.clock import Clock, MonotonicClock
from core.access.concurrency import ConcurrencyGovernor
from core.access.dedup import RequestDeduplicator
from core.access.pipeline import AccessPipeline, PipelineStats
from core.access.rate_limiter import RateLimiter

__all__ = [
    "AccessPipeline",
    "CacheEntry",
    "Clock",
    "ConcurrencyGovernor",
    "EvictionPolicy",
    "LeastRecentlyUsed",
    "MonotonicClock",
    "OldestInserted",
    "PipelineStats",
    "RateLimiter",
    "RequestDeduplicator",
    "ResponseCache",
    "build_cache_key",
]
