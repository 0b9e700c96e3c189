"""Transport and request-log contracts.

Scope:
- The access pipeline only needs "perform one call" and "record one outcome";
  the httpx transport and the file-backed log are swapped for fakes in tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from core.domain.outcome import RequestOutcome


@runtime_checkable
class Transport(Protocol):
    """Performs exactly one network call and classifies its failure.

    - ``perform`` returns the decoded JSON body.
    - ``perform_bytes`` returns the raw body of an absolute URL.
    - Failures raise ``core.errors.TransportError`` subclasses; no retries.
    """

    async def perform(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        ...

    async def perform_bytes(self, url: str) -> bytes:
        ...


@runtime_checkable
class RequestRecorder(Protocol):
    """Best-effort sink for request outcomes. Must never raise."""

    def record(self, outcome: RequestOutcome) -> None:
        ...

    def note(self, line: str) -> None:
        ...
