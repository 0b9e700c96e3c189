"""Core configuration.

Centralizes environment variables (pydantic-settings) so that adapters
(HTTP, images, request log) read the same validated values.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "opendota-tui"

DEFAULT_BASE_URL = "https://api.opendota.com/api"
DEFAULT_ACCOUNT_ID = 135664392

# Unprefixed overrides used to point verification runs at another target.
BASE_URL_OVERRIDE_ENV = "OPENDOTA_BASE_URL"
ACCOUNT_ID_OVERRIDE_ENV = "OPENDOTA_ACCOUNT_ID"
LIVE_GATE_ENV = "OPENDOTA_LIVE"


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_cache_dir() -> Path:
    """Per-user cache directory, home of the on-disk image cache."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("LOCALAPPDATA", str(Path.home())))
        return base / APP_NAME / "cache"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_NAME

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".cache" / APP_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except OSError:
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# opendota-tui user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Limits are validated at the edge (env vars / .env) so a bad value is
    reported at startup instead of surfacing as a hung lookup later.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPENDOTA_TUI_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        min_length=8,
        description="Base URL of the stats API.",
    )
    rate_limit_per_minute: int = Field(
        default=60,
        ge=1,
        description="Maximum admitted API calls per trailing minute.",
    )
    cache_ttl_secs: int = Field(
        default=300,
        ge=0,
        description="Lifetime of a cached response (seconds).",
    )
    cache_max_entries: int = Field(
        default=256,
        ge=1,
        description="Maximum number of cached responses.",
    )
    max_inflight: int = Field(
        default=6,
        ge=1,
        description="Maximum number of simultaneous network calls.",
    )
    log_requests: bool = Field(
        default=True,
        description="Append one line per request outcome to the request log.",
    )
    log_path: Path | None = Field(
        default=None,
        description="Request log file (default: <config dir>/tui.log).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    connect_timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Connect timeout (seconds).",
    )
    user_agent: str = Field(
        default=APP_NAME,
        min_length=1,
        description="User-Agent sent with every request.",
    )

    images_enabled: bool = Field(
        default=True,
        description="Render images in the terminal when a protocol is available.",
    )
    image_protocol: str = Field(
        default="auto",
        pattern=r"(?i)^(auto|kitty|iterm2|wezterm|none)$",
        description="auto-detect, a specific protocol (kitty/iterm2/wezterm) or none.",
    )
    cdn_base: str = Field(
        default="https://cdn.cloudflare.steamstatic.com",
        min_length=8,
        description="Base URL for hero/item image paths.",
    )
    cache_dir: Path | None = Field(
        default=None,
        description="Cache directory (default: per-user cache dir).",
    )
    image_memory_entries: int = Field(
        default=256,
        ge=1,
        description="In-memory image LRU capacity.",
    )

    def resolve_log_path(self) -> Path | None:
        """Request log file, or None when request logging is disabled."""

        if not self.log_requests:
            return None
        return self.log_path or get_user_config_dir() / "tui.log"

    def resolve_cache_dir(self) -> Path:
        return self.cache_dir or get_user_cache_dir()


def settings_with_overrides(settings: AppSettings | None = None) -> AppSettings:
    """Apply the unprefixed verification overrides (base URL) on top of settings."""

    settings = settings or AppSettings()
    base = (os.environ.get(BASE_URL_OVERRIDE_ENV) or "").strip()
    if base:
        settings = settings.model_copy(update={"base_url": base})
    return settings


def account_id_override(default: int = DEFAULT_ACCOUNT_ID) -> int:
    raw = (os.environ.get(ACCOUNT_ID_OVERRIDE_ENV) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def live_network_enabled() -> bool:
    return os.environ.get(LIVE_GATE_ENV) == "1"
