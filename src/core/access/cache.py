"""In-memory response cache with TTL and bounded capacity.

Rules:
- An entry is a hit while ``now - inserted_at < ttl``; afterwards it is
  treated as absent and purged on the next ``get``.
- When an insert would exceed ``max_entries``, the eviction policy picks the
  victim (least recently used by default).
- Every read/write goes through one lock per cache. Nothing awaits while the
  lock is held.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar
from urllib.parse import urlencode

from core.access.clock import Clock, MonotonicClock
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

V = TypeVar("V")


def build_cache_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Canonical key: endpoint plus parameters in stable (sorted) order."""

    if not params:
        return endpoint
    pairs = sorted((str(k), str(v)) for k, v in params.items())
    return f"{endpoint}?{urlencode(pairs)}"


@dataclass
class CacheEntry(Generic[V]):
    value: V
    inserted_at: float
    last_access: float
    # Tie-breaker for entries touched at the same clock reading.
    sequence: int


class EvictionPolicy(Protocol):
    def choose_victim(self, entries: Mapping[str, CacheEntry[Any]]) -> str:
        """Return the key to evict from a non-empty mapping."""

        ...


class LeastRecentlyUsed:
    def choose_victim(self, entries: Mapping[str, CacheEntry[Any]]) -> str:
        return min(entries, key=lambda k: (entries[k].last_access, entries[k].sequence))


class OldestInserted:
    """Evict by insertion time, ignoring reads."""

    def choose_victim(self, entries: Mapping[str, CacheEntry[Any]]) -> str:
        return min(entries, key=lambda k: entries[k].inserted_at)


class ResponseCache(Generic[V]):
    def __init__(
        self,
        *,
        max_entries: int,
        ttl_seconds: float | None,
        clock: Clock | None = None,
        policy: EvictionPolicy | None = None,
        name: str = "responses",
    ) -> None:
        if max_entries <= 0:
            raise ConfigurationError(f"cache_max_entries must be a positive integer, got {max_entries!r}")
        if ttl_seconds is not None and ttl_seconds < 0:
            raise ConfigurationError(f"cache_ttl_secs must not be negative, got {ttl_seconds!r}")
        self._max_entries = int(max_entries)
        self._ttl = ttl_seconds
        self._clock = clock or MonotonicClock()
        self._policy = policy or LeastRecentlyUsed()
        self._name = name
        self._entries: dict[str, CacheEntry[V]] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def get(self, key: str) -> V | None:
        """Return the cached value or ``None`` on a miss."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock.now()
            if self._expired(entry, now):
                del self._entries[key]
                logger.debug("%s cache: expired %s", self._name, key)
                return None
            entry.last_access = now
            entry.sequence = next(self._sequence)
            return entry.value

    def put(self, key: str, value: V) -> None:
        with self._lock:
            now = self._clock.now()
            if key not in self._entries:
                while len(self._entries) >= self._max_entries:
                    victim = self._policy.choose_victim(self._entries)
                    del self._entries[victim]
                    logger.debug("%s cache: evicted %s", self._name, victim)
            self._entries[key] = CacheEntry(
                value=value,
                inserted_at=now,
                last_access=now,
                sequence=next(self._sequence),
            )

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _expired(self, entry: CacheEntry[V], now: float) -> bool:
        if self._ttl is None:
            return False
        return now - entry.inserted_at >= self._ttl
