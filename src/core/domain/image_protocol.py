"""Terminal image protocols.

A closed set of variants, resolved once per process by capability
negotiation and dispatched on by the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ImageProtocol(str, Enum):
    """Supported inline-image protocols (or none)."""

    KITTY = "kitty"
    ITERM2 = "iterm2"
    NONE = "none"

    @classmethod
    def from_setting(cls, value: str) -> "ImageProtocol | None":
        """Map a configured name to a protocol; ``None`` means auto-detect."""

        name = value.strip().lower()
        if name == "kitty":
            return cls.KITTY
        if name in ("iterm2", "wezterm"):
            return cls.ITERM2
        if name == "none":
            return cls.NONE
        return None

    def label(self) -> str:
        """Human readable label for diagnostics."""

        if self is ImageProtocol.KITTY:
            return "Kitty graphics"
        if self is ImageProtocol.ITERM2:
            return "iTerm2 inline images"
        return "none (text placeholders)"


@dataclass(frozen=True)
class ImageCapability:
    protocol: ImageProtocol
    source: str

    @property
    def supported(self) -> bool:
        return self.protocol is not ImageProtocol.NONE
