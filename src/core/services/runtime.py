"""Composition root.

Builds the shared structures (caches, limiter, governor, request log,
transport) once from ``AppSettings`` and hands them to the services. Entry
points (CLI, tests) use ``open_runtime`` and never reach for globals.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from adapters.http_client import HttpTransport
from adapters.image_cache import ImageDiskCache
from adapters.opendota import OpenDotaClient
from adapters.request_log import RequestLogger
from core.access import (
    AccessPipeline,
    Clock,
    ConcurrencyGovernor,
    MonotonicClock,
    RateLimiter,
    ResponseCache,
)
from core.config import AppSettings
from core.services.browser import PlayerBrowser
from core.services.images import ImageService


@dataclass
class AppRuntime:
    settings: AppSettings
    pipeline: AccessPipeline
    client: OpenDotaClient
    images: ImageService
    browser: PlayerBrowser
    request_log: RequestLogger


def build_runtime(
    settings: AppSettings,
    *,
    http_transport: HttpTransport,
    clock: Clock | None = None,
    env: Mapping[str, str] | None = None,
) -> AppRuntime:
    """Wire every component; raises ``ConfigurationError`` for invalid limits."""

    clock = clock or MonotonicClock()
    request_log = RequestLogger(settings.resolve_log_path())
    pipeline = AccessPipeline(
        transport=http_transport,
        cache=ResponseCache(
            max_entries=settings.cache_max_entries,
            ttl_seconds=settings.cache_ttl_secs,
            clock=clock,
        ),
        limiter=RateLimiter(settings.rate_limit_per_minute, clock=clock),
        governor=ConcurrencyGovernor(settings.max_inflight),
        recorder=request_log,
    )
    client = OpenDotaClient(pipeline)
    images = ImageService(
        pipeline=pipeline,
        disk_cache=ImageDiskCache(settings.resolve_cache_dir() / "images"),
        memory=ResponseCache(
            max_entries=settings.image_memory_entries,
            ttl_seconds=None,
            clock=clock,
            name="images",
        ),
        protocol_setting=settings.image_protocol,
        enabled=settings.images_enabled,
        env=env,
    )
    return AppRuntime(
        settings=settings,
        pipeline=pipeline,
        client=client,
        images=images,
        browser=PlayerBrowser(client),
        request_log=request_log,
    )


@asynccontextmanager
async def open_runtime(
    settings: AppSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock | None = None,
    env: Mapping[str, str] | None = None,
) -> AsyncIterator[AppRuntime]:
    http = HttpTransport.from_settings(settings, transport=transport)
    try:
        runtime = build_runtime(settings, http_transport=http, clock=clock, env=env)
    except BaseException:
        await http.aclose()
        raise
    runtime.request_log.start()
    try:
        yield runtime
    finally:
        runtime.request_log.stop()
        await http.aclose()
