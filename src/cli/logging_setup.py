"""Diagnostic logging configuration (rich handler on the root logger)."""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

_LOG_LEVEL_ENV: Final[str] = "OPENDOTA_TUI_LOG_LEVEL"
_DEFAULT_LEVEL_NAME: Final[str] = "WARNING"

err_console = Console(stderr=True)


def _resolve_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    level_name = os.getenv(_LOG_LEVEL_ENV, _DEFAULT_LEVEL_NAME).upper()
    return getattr(logging, level_name, logging.WARNING)


def configure_logging(*, verbose: bool = False) -> None:
    """Configure the root logger once with a Rich handler on stderr."""

    root_logger = logging.getLogger()
    if not any(getattr(h, "_opendota_managed", False) for h in root_logger.handlers):
        handler = RichHandler(
            console=err_console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._opendota_managed = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    root_logger.setLevel(_resolve_level(verbose))
    # httpx logs every request at INFO; keep it for --verbose only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.captureWarnings(True)
