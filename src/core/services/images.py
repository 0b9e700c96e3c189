"""Image fetch path.

Order for ``fetch(url)``:
1) in-memory LRU (process lifetime),
2) on-disk cache (survives restarts),
3) the access pipeline (rate limiter → governor → deduplicator → transport);
   the PNG-normalised bytes are written to disk once per coalesced call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from adapters.image_cache import ImageDiskCache, ensure_png
from adapters.terminal_images import ImageRenderer, negotiate_capability
from core.access.cache import ResponseCache
from core.access.pipeline import AccessPipeline
from core.domain.image_protocol import ImageCapability
from core.errors import OpenDotaError, ParseError

logger = logging.getLogger(__name__)


class ImageService:
    def __init__(
        self,
        *,
        pipeline: AccessPipeline,
        disk_cache: ImageDiskCache,
        memory: ResponseCache[bytes],
        protocol_setting: str = "auto",
        enabled: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._disk = disk_cache
        self._memory = memory
        self._protocol_setting = protocol_setting
        self._enabled = enabled
        self._env = env
        self._capability: ImageCapability | None = None
        self._renderer: ImageRenderer | None = None

    @property
    def capability(self) -> ImageCapability:
        """Negotiated on first use, then fixed for the lifetime of the service."""

        if self._capability is None:
            self._capability = negotiate_capability(
                self._protocol_setting, enabled=self._enabled, env=self._env
            )
            logger.info("image protocol: %s (%s)", self._capability.protocol.value, self._capability.source)
        return self._capability

    @property
    def renderer(self) -> ImageRenderer:
        if self._renderer is None:
            self._renderer = ImageRenderer(self.capability)
        return self._renderer

    async def fetch(self, url: str) -> bytes:
        """PNG bytes for ``url``; raises ``OpenDotaError`` subclasses on failure."""

        cached = self._memory.get(url)
        if cached is not None:
            return cached

        from_disk = await self._read_disk(url)
        if from_disk is not None:
            self._memory.put(url, from_disk)
            return from_disk

        async def finalize(raw: bytes) -> bytes:
            png = await asyncio.to_thread(ensure_png, raw)
            try:
                await self._disk.write(url, png)
            except OSError as exc:
                logger.warning("could not persist image %s: %s", url, exc)
            return png

        return await self._pipeline.get_bytes(url, finalize=finalize, cache=self._memory)

    async def invalidate(self, url: str) -> None:
        """Forget ``url`` in memory and on disk; the next fetch goes to the network."""

        self._memory.invalidate(url)
        await self._disk.invalidate(url)

    async def render(self, url: str | None, width: int, height: int) -> str:
        """Escape sequence for ``url`` or the text placeholder; never raises."""

        renderer = self.renderer
        if not url or not self.capability.supported:
            return renderer.placeholder
        try:
            png = await self.fetch(url)
        except OpenDotaError as exc:
            logger.info("image %s unavailable: %s", url, exc)
            return renderer.placeholder
        return renderer.render(png, width, height)

    async def _read_disk(self, url: str) -> bytes | None:
        try:
            data = await self._disk.read(url)
        except OSError as exc:
            logger.warning("image cache read failed for %s: %s", url, exc)
            return None
        if data is None:
            return None
        try:
            return await asyncio.to_thread(ensure_png, data)
        except ParseError:
            logger.info("discarding undecodable cached image for %s", url)
            await self._disk.invalidate(url)
            return None
