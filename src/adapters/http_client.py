"""httpx wrapper.

What the wrapper does:
- Standardizes timeouts, headers and base URL for every call.
- Classifies failures into the project's error taxonomy.
- Eases testing: the client can be built on an ``httpx.MockTransport``.

No automatic retry is performed; the caller decides whether to re-issue.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from core.config import AppSettings
from core.errors import (
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitedError,
    RemoteError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` with the project defaults.

    One builder keeps every call on the same timeouts/headers.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/"),
        timeout=httpx.Timeout(settings.http_timeout_seconds, connect=settings.connect_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def classify_status(response: httpx.Response, endpoint: str) -> None:
    """Raise the matching ``RemoteError`` for a non-success response."""

    status = response.status_code
    if 200 <= status < 300:
        return
    message = f"HTTP {status} for {endpoint}"
    if status == 429:
        raise RateLimitedError(message, endpoint=endpoint, retry_after=_retry_after(response))
    if status == 404:
        raise NotFoundError(message, status_code=status, endpoint=endpoint)
    raise RemoteError(message, status_code=status, endpoint=endpoint)


class HttpTransport:
    """Performs one GET and turns every failure into a typed error."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HttpTransport":
        return cls(build_async_client(settings, transport=transport))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def perform(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        response = await self._send(endpoint, params)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError(f"Malformed JSON body from {endpoint}: {exc}", endpoint=endpoint) from exc

    async def perform_bytes(self, url: str) -> bytes:
        response = await self._send(url, None)
        return response.content

    async def _send(self, endpoint: str, params: Mapping[str, Any] | None) -> httpx.Response:
        try:
            response = await self._client.get(endpoint, params=dict(params) if params else None)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"Timed out requesting {endpoint}", endpoint=endpoint) from exc
        except httpx.DecodingError as exc:
            raise ParseError(f"Undecodable body from {endpoint}: {exc}", endpoint=endpoint) from exc
        except httpx.TooManyRedirects as exc:
            raise NetworkError(f"Redirect loop requesting {endpoint}", endpoint=endpoint) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Network failure requesting {endpoint}: {exc}", endpoint=endpoint) from exc
        classify_status(response, endpoint)
        return response
