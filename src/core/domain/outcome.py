"""Request outcome record, consumed only by the request log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class RequestOutcome:
    endpoint: str
    latency_ms: float
    outcome: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.outcome == "ok"

    def to_line(self) -> str:
        return (
            f"{self.timestamp.isoformat(timespec='milliseconds')} GET {self.endpoint} "
            f"outcome={self.outcome} elapsed_ms={int(round(self.latency_ms))}"
        )
