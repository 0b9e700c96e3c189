"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.terminal_images import negotiate_capability
from core.config import AppSettings, settings_with_overrides, write_user_env_vars
from core.errors import OpenDotaError
from core.services.runtime import open_runtime

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_api(settings: AppSettings) -> tuple[bool, str]:
    """One real lookup through the full pipeline (limiter, governor, log)."""

    try:
        async with open_runtime(settings) as runtime:
            heroes = await runtime.client.fetch_heroes()
            stats = runtime.pipeline.stats
            peak = runtime.pipeline.governor.peak
        return True, f"{len(heroes)} heroes, {stats.network_calls} call(s), peak in flight {peak}"
    except OpenDotaError as exc:
        return False, str(exc)


@app.command()
def run(offline: bool = typer.Option(False, "--offline", help="Skip the connectivity check.")) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    try:
        settings = settings_with_overrides(AppSettings())
    except ValidationError as exc:
        _console.print(f"[red]Invalid configuration:[/red]\n{exc}")
        raise typer.Exit(code=2) from exc

    table = Table(title="OpenDota TUI Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base_url", "OK", settings.base_url)
    table.add_row(
        "Limits",
        "OK",
        f"{settings.rate_limit_per_minute}/min, {settings.max_inflight} in flight, "
        f"cache {settings.cache_max_entries} x {settings.cache_ttl_secs}s",
    )
    log_path = settings.resolve_log_path()
    table.add_row("Request log", "OK" if log_path else "OFF", str(log_path) if log_path else "log_requests=false")
    table.add_row("Image cache", "OK", str(settings.resolve_cache_dir() / "images"))

    capability = negotiate_capability(settings.image_protocol, enabled=settings.images_enabled)
    table.add_row(
        "Image protocol",
        "OK" if capability.supported else "TEXT",
        f"{capability.protocol.label()} ({capability.source})",
    )

    # Connectivity (best-effort)
    ok_http = True
    if offline:
        table.add_row("API connectivity", "SKIPPED", "--offline")
    else:
        ok_http, detail_http = asyncio.run(_check_api(settings))
        table.add_row("API connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not capability.supported:
        _console.print(
            "\n[yellow]Note:[/yellow] No image protocol detected; avatars render as text placeholders. "
            "Set OPENDOTA_TUI_IMAGE_PROTOCOL=kitty|iterm2 to force one."
        )
    if not ok_http:
        raise typer.Exit(code=1)


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    base_url = typer.prompt("API base URL", default="https://api.opendota.com/api", show_default=True).strip()
    protocol = typer.prompt(
        "Image protocol (auto/kitty/iterm2/none)",
        default="auto",
        show_default=True,
    ).strip().lower()
    rate = typer.prompt("Requests per minute", default=60, show_default=True, type=int)

    if protocol not in ("auto", "kitty", "iterm2", "wezterm", "none"):
        raise typer.BadParameter("protocol must be one of auto, kitty, iterm2, wezterm, none")
    if rate <= 0:
        raise typer.BadParameter("requests per minute must be a positive integer")

    env_path = write_user_env_vars(
        {
            "OPENDOTA_TUI_BASE_URL": base_url,
            "OPENDOTA_TUI_IMAGE_PROTOCOL": protocol,
            "OPENDOTA_TUI_RATE_LIMIT_PER_MINUTE": str(rate),
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
