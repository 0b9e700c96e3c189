"""On-disk, URL-keyed image byte cache.

Files live under ``<cache_dir>/images/<sha256(url)>`` and survive restarts.
Disk I/O runs in a worker thread so the event loop never blocks on it.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import os
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from core.errors import ParseError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def ensure_png(data: bytes) -> bytes:
    """Return ``data`` as PNG, converting other formats with Pillow."""

    if data.startswith(PNG_SIGNATURE):
        return data
    try:
        with Image.open(io.BytesIO(data)) as img:
            out = io.BytesIO()
            if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                img = img.convert("RGBA")
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ParseError(f"Not a decodable image ({len(data)} bytes): {exc}") from exc
    return out.getvalue()


class ImageDiskCache:
    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.directory / digest

    async def read(self, url: str) -> bytes | None:
        return await asyncio.to_thread(self._read, url)

    async def write(self, url: str, data: bytes) -> Path:
        return await asyncio.to_thread(self._write, url, data)

    async def invalidate(self, url: str) -> bool:
        return await asyncio.to_thread(self._remove, url)

    def _read(self, url: str) -> bytes | None:
        path = self.path_for(url)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, url: str, data: bytes) -> Path:
        path = self.path_for(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a truncated entry behind.
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return path

    def _remove(self, url: str) -> bool:
        path = self.path_for(url)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
