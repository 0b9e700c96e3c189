"""CLI entry point."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from cli import doctor
from cli.logging_setup import configure_logging
from cli.ui_components import (
    build_error_panel,
    build_matches_table,
    build_profile_panel,
    build_team_table,
    print_banner,
)
from core.config import AppSettings, settings_with_overrides
from core.errors import ConfigurationError
from core.services.runtime import AppRuntime, open_runtime

app = typer.Typer(no_args_is_help=True, help="Browse OpenDota player statistics from the terminal.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

AVATAR_CELLS = (12, 6)
HERO_CELLS = (16, 4)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
) -> None:
    configure_logging(verbose=verbose)


def _load_settings() -> AppSettings:
    try:
        return settings_with_overrides(AppSettings())
    except ValidationError as exc:
        _console.print(f"[red]Invalid configuration:[/red]\n{exc}")
        raise typer.Exit(code=2) from exc


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except ConfigurationError as exc:
        _console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc


async def _show_player(runtime: AppRuntime, account_id: int, *, limit: int) -> None:
    browser = runtime.browser
    await browser.load_heroes()
    result = await browser.search(account_id)
    if result is None:
        return

    state = browser.state
    if state.profile_error is not None:
        _console.print(build_error_panel("Profile", state.profile_error))
    elif state.profile is not None:
        images = runtime.images
        width, height = AVATAR_CELLS
        avatar = await images.render(state.profile.avatar_url, width, height)
        if images.capability.supported and avatar != images.renderer.placeholder:
            _console.print(build_profile_panel(account_id, state.profile))
            _console.file.write(avatar + "\n")
            _console.file.flush()
        else:
            _console.print(build_profile_panel(account_id, state.profile, avatar_placeholder=avatar))

    if state.match_error is not None:
        _console.print(build_error_panel("Matches", state.match_error))
    elif state.matches:
        _console.print(build_matches_table(state.matches[:limit], browser.hero_name))
        await _show_last_hero(runtime, state.matches[0].hero_id)
    else:
        _console.print("[dim]No recent matches.[/dim]")

    if state.heroes_error is not None:
        _console.print(f"[yellow]Hero names unavailable:[/yellow] {state.heroes_error}")


async def _show_last_hero(runtime: AppRuntime, hero_id: int) -> None:
    """Portrait of the most recent match's hero, only where images can be drawn."""

    images = runtime.images
    if not images.capability.supported:
        return
    browser = runtime.browser
    await browser.load_hero_images(runtime.settings.cdn_base)
    width, height = HERO_CELLS
    portrait = await images.render(browser.hero_image_url(hero_id), width, height)
    _console.print(f"Last hero: {browser.hero_name(hero_id)}")
    if portrait == images.renderer.placeholder:
        _console.print(portrait, style="dim", markup=False)
        return
    _console.file.write(portrait + "\n")
    _console.file.flush()


async def _show_match(runtime: AppRuntime, match_id: int) -> None:
    browser = runtime.browser
    await asyncio.gather(browser.load_heroes(), browser.load_items())
    await browser.open_match(match_id)
    state = browser.state
    if state.detail_error is not None:
        _console.print(build_error_panel(f"Match {match_id}", state.detail_error))
        return
    if state.match_detail is None:
        return
    for radiant in (True, False):
        _console.print(
            build_team_table(
                state.match_detail,
                radiant=radiant,
                hero_name=browser.hero_name,
                item_name=browser.item_name,
            )
        )
    if state.items_error is not None:
        _console.print(f"[yellow]Item names unavailable:[/yellow] {state.items_error}")


@app.command()
def player(
    account_id: int = typer.Argument(..., help="Steam32 account id."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Matches to show."),
    banner: bool = typer.Option(True, "--banner/--no-banner", help="Show the banner."),
) -> None:
    """Show a player's profile and recent matches."""

    settings = _load_settings()
    if banner:
        print_banner(_console)

    async def flow() -> None:
        async with open_runtime(settings) as runtime:
            await _show_player(runtime, account_id, limit=limit)

    _run(flow())


@app.command(name="match")
def match_detail(match_id: int = typer.Argument(..., help="Match id.")) -> None:
    """Show both teams of a match with K/D/A, economy and items."""

    settings = _load_settings()

    async def flow() -> None:
        async with open_runtime(settings) as runtime:
            await _show_match(runtime, match_id)

    _run(flow())


def run() -> None:
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
    app()


if __name__ == "__main__":
    run()
