"""CLI UI components (Rich).

Tables and panels are built from service state only, so commands stay free
of layout details. Failed sections render as error panels instead of
aborting the command.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import MatchDetail, MatchPlayer, PlayerMatch, PlayerResponse
from core.errors import OpenDotaError

HeroNamer = Callable[[int | None], str]
ItemNamer = Callable[[int], str]


def print_banner(console: Console) -> None:
    title = Text("OPENDOTA TUI", style="bold cyan")
    subtitle = Text("Profiles • Recent matches • Match details", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def format_duration(seconds: int | None) -> str:
    if seconds is None:
        return "-"
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def format_start_time(timestamp: int | None) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _kda(kills: int | None, deaths: int | None, assists: int | None) -> str:
    return "/".join("-" if v is None else str(v) for v in (kills, deaths, assists))


def build_error_panel(section: str, error: OpenDotaError) -> Panel:
    body = Text(str(error), style="red")
    outcome = getattr(error, "outcome", None)
    if outcome:
        body.append(f"\n({outcome})", style="dim")
    return Panel(body, title=Text(f"{section} unavailable", style="bold red"), border_style="red")


def build_profile_panel(account_id: int, profile: PlayerResponse, *, avatar_placeholder: str | None = None) -> Panel:
    body = Text()
    info = profile.profile
    name = info.personaname if info and info.personaname else "Unknown"
    body.append(name + "\n", style="bold")
    body.append(f"Account: {account_id}\n")
    if info and info.steamid:
        body.append(f"Steam ID: {info.steamid}\n")
    estimate = profile.mmr_estimate.estimate if profile.mmr_estimate else None
    body.append(f"MMR estimate: {estimate if estimate is not None else '-'}")
    if avatar_placeholder:
        body.append(f"\n{avatar_placeholder}", style="dim")
    return Panel(body, title=Text("Profile", style="bold yellow"), border_style="yellow")


def build_matches_table(matches: list[PlayerMatch], hero_name: HeroNamer) -> Table:
    table = Table(title="Recent Matches")
    table.add_column("Match", style="cyan", no_wrap=True)
    table.add_column("Hero", style="white")
    table.add_column("Result", no_wrap=True)
    table.add_column("K/D/A", style="magenta")
    table.add_column("Duration", style="dim")
    table.add_column("Started (UTC)", style="dim")
    for match in matches:
        result = Text("Win", style="green") if match.won else Text("Loss", style="red")
        table.add_row(
            str(match.match_id),
            hero_name(match.hero_id),
            result,
            _kda(match.kills, match.deaths, match.assists),
            format_duration(match.duration),
            format_start_time(match.start_time),
        )
    return table


def _player_row(player: MatchPlayer, hero_name: HeroNamer, item_name: ItemNamer) -> list[str]:
    return [
        player.personaname or (str(player.account_id) if player.account_id else "Anonymous"),
        hero_name(player.hero_id),
        _kda(player.kills, player.deaths, player.assists),
        "-" if player.gold_per_min is None else str(player.gold_per_min),
        "-" if player.xp_per_min is None else str(player.xp_per_min),
        "-" if player.net_worth is None else f"{player.net_worth:,}",
        ", ".join(item_name(item) for item in player.items) or "-",
    ]


def build_team_table(
    detail: MatchDetail,
    *,
    radiant: bool,
    hero_name: HeroNamer,
    item_name: ItemNamer = str,
) -> Table:
    side = "Radiant" if radiant else "Dire"
    won = detail.radiant_win is not None and detail.radiant_win == radiant
    title = f"{side}{' (winner)' if won else ''}"
    table = Table(title=title, title_style="green" if won else "red")
    table.add_column("Player", style="cyan")
    table.add_column("Hero", style="white")
    table.add_column("K/D/A", style="magenta")
    table.add_column("GPM", justify="right")
    table.add_column("XPM", justify="right")
    table.add_column("Net worth", justify="right")
    table.add_column("Items", style="dim")
    for player in detail.team(radiant):
        table.add_row(*_player_row(player, hero_name, item_name))
    return table
