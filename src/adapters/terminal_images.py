"""Terminal image capability negotiation and wire encoding.

Detection reads the environment only (no terminal round-trip):
- kitty: ``KITTY_WINDOW_ID`` set, ``TERM`` containing ``kitty`` or a Ghostty
  ``TERM_PROGRAM``;
- iTerm2 protocol: ``ITERM_SESSION_ID`` / ``WEZTERM_EXECUTABLE`` set or
  ``TERM_PROGRAM`` in (``WezTerm``, ``iTerm.app``);
- anything else: none.
"""

from __future__ import annotations

import base64
import logging
import os
from collections.abc import Mapping

from core.domain.image_protocol import ImageCapability, ImageProtocol

logger = logging.getLogger(__name__)

ESC = "\x1b"
BEL = "\x07"
KITTY_CHUNK = 4096
KITTY_RESET = f"{ESC}_Ga=d{ESC}\\"
DEFAULT_PLACEHOLDER = "[img]"


def detect_protocol(env: Mapping[str, str] | None = None) -> ImageProtocol:
    env = os.environ if env is None else env
    term = env.get("TERM", "").lower()
    term_program = env.get("TERM_PROGRAM", "")

    if "KITTY_WINDOW_ID" in env or "kitty" in term or "ghostty" in term_program.lower():
        return ImageProtocol.KITTY
    if (
        "ITERM_SESSION_ID" in env
        or "WEZTERM_EXECUTABLE" in env
        or term_program in ("WezTerm", "iTerm.app")
    ):
        return ImageProtocol.ITERM2
    return ImageProtocol.NONE


def negotiate_capability(
    setting: str,
    *,
    enabled: bool = True,
    env: Mapping[str, str] | None = None,
) -> ImageCapability:
    """Resolve the protocol from configuration, probing only for ``auto``."""

    if not enabled:
        return ImageCapability(ImageProtocol.NONE, source="disabled")
    forced = ImageProtocol.from_setting(setting)
    if forced is not None:
        return ImageCapability(forced, source="config")
    detected = detect_protocol(env)
    logger.debug("detected image protocol: %s", detected.value)
    return ImageCapability(detected, source="detected")


def encode_iterm2(png: bytes, width: int, height: int) -> str:
    payload = base64.b64encode(png).decode("ascii")
    return (
        f"{ESC}]1337;File=inline=1;width={width}c;height={height}c;"
        f"preserveAspectRatio=1:{payload}{BEL}"
    )


def encode_kitty(png: bytes, width: int, height: int) -> str:
    payload = base64.b64encode(png).decode("ascii")
    chunks = [payload[i : i + KITTY_CHUNK] for i in range(0, len(payload), KITTY_CHUNK)] or [""]
    out: list[str] = []
    for index, chunk in enumerate(chunks):
        more = 1 if index < len(chunks) - 1 else 0
        out.append(f"{ESC}_Ga=T,f=100,c={width},r={height},m={more};{chunk}{ESC}\\")
    return "".join(out)


def encode_image(protocol: ImageProtocol, png: bytes, width: int, height: int) -> str:
    """Escape sequence for ``png`` in a ``width`` x ``height`` cell box ("" for none)."""

    width = max(1, width)
    height = max(1, height)
    if protocol is ImageProtocol.KITTY:
        return encode_kitty(png, width, height)
    if protocol is ImageProtocol.ITERM2:
        return encode_iterm2(png, width, height)
    return ""


def reset_sequence(protocol: ImageProtocol) -> str:
    """Sequence that clears previously drawn images."""

    if protocol is ImageProtocol.KITTY:
        return KITTY_RESET
    return ""


class ImageRenderer:
    """Turns image bytes into output for the negotiated protocol."""

    def __init__(self, capability: ImageCapability, *, placeholder: str = DEFAULT_PLACEHOLDER) -> None:
        self.capability = capability
        self.placeholder = placeholder

    def render(self, png: bytes | None, width: int, height: int) -> str:
        if not self.capability.supported or not png:
            return self.placeholder
        return encode_image(self.capability.protocol, png, width, height)

    def reset(self) -> str:
        return reset_sequence(self.capability.protocol)
