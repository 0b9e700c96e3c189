"""Error taxonomy for the API access layer.

A cache miss is not an error (lookups return ``None``). Everything that can
go wrong with a network call is a ``TransportError`` whose ``outcome`` is the
short code written to the request log.
"""

from __future__ import annotations


class OpenDotaError(Exception):
    """Base class for every error raised by this project."""


class ConfigurationError(OpenDotaError, ValueError):
    """Invalid limit or setting, reported when the component is built."""


class TransportError(OpenDotaError):
    """A network call did not produce a usable payload."""

    outcome = "error"

    def __init__(self, message: str, *, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class NetworkError(TransportError):
    """Connect failure or any other transport-level failure."""

    outcome = "network"


class RequestTimeoutError(TransportError):
    outcome = "timeout"


class RemoteError(TransportError):
    """The remote answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int, endpoint: str | None = None) -> None:
        super().__init__(message, endpoint=endpoint)
        self.status_code = status_code

    @property
    def outcome(self) -> str:  # type: ignore[override]
        return f"http_{self.status_code}"


class RateLimitedError(RemoteError):
    """HTTP 429 from the remote's own limiter."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 429,
        endpoint: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, endpoint=endpoint)
        self.retry_after = retry_after

    @property
    def outcome(self) -> str:  # type: ignore[override]
        return "rate_limited"


class NotFoundError(RemoteError):
    @property
    def outcome(self) -> str:  # type: ignore[override]
        return "not_found"


class ParseError(TransportError):
    """The body arrived but is not the JSON/image we expected."""

    outcome = "parse_error"
