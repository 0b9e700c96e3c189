from __future__ import annotations

import importlib.util
import io
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest
from PIL import Image
from typer.testing import CliRunner

import cli.main as cli_main
from core.services import runtime as runtime_module

runner = CliRunner()

ROUTES = {
    "/api/heroStats": [{"id": 2, "localized_name": "Axe"}],
    "/api/players/77": {"profile": {"personaname": "tester", "avatarfull": "https://avatars.test/a.jpg"}},
    "/api/players/77/recentMatches": [
        {"match_id": 7001, "player_slot": 1, "radiant_win": True, "duration": 2400, "hero_id": 2}
    ],
    "/api/constants/items": {"blink": {"id": 1, "dname": "Blink"}},
    "/api/constants/heroes": {"axe": {"id": 2, "img": "/heroes/axe.png"}},
    "/api/matches/7001": {
        "match_id": 7001,
        "radiant_win": True,
        "players": [
            {"player_slot": 0, "hero_id": 2, "personaname": "tester", "kills": 9, "deaths": 1, "assists": 3, "item_0": 1},
            {"player_slot": 128, "hero_id": 2, "personaname": "enemy"},
        ],
    },
}


def _png() -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (2, 2), (10, 120, 10)).save(out, format="PNG")
    return out.getvalue()


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "cdn.test" and request.url.path == "/heroes/axe.png":
        return httpx.Response(200, content=_png())
    body = ROUTES.get(request.url.path)
    if body is None:
        return httpx.Response(404, json={"error": "Not Found"})
    return httpx.Response(200, json=body)


@pytest.fixture
def offline_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("OPENDOTA_TUI_BASE_URL", "https://stats.test/api")
    monkeypatch.setenv("OPENDOTA_TUI_LOG_PATH", str(tmp_path / "tui.log"))
    monkeypatch.setenv("OPENDOTA_TUI_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("OPENDOTA_TUI_IMAGE_PROTOCOL", "none")
    monkeypatch.delenv("OPENDOTA_BASE_URL", raising=False)

    @asynccontextmanager
    async def fake_open_runtime(settings, **kwargs):
        async with runtime_module.open_runtime(
            settings, transport=httpx.MockTransport(_handler), env={}
        ) as runtime:
            yield runtime

    monkeypatch.setattr(cli_main, "open_runtime", fake_open_runtime)
    return tmp_path / "tui.log"


def test_player_command_renders_profile_and_matches(offline_cli: Path) -> None:
    result = runner.invoke(cli_main.app, ["player", "77", "--no-banner"])

    assert result.exit_code == 0, result.output
    assert "tester" in result.output
    assert "7001" in result.output
    assert "[img]" in result.output

    log_lines = offline_cli.read_text(encoding="utf-8").splitlines()
    assert any("GET /players/77 outcome=ok" in line for line in log_lines)


def test_missing_player_shows_an_error_panel(offline_cli: Path) -> None:
    result = runner.invoke(cli_main.app, ["player", "5", "--no-banner"])

    assert result.exit_code == 0, result.output
    assert "Profile unavailable" in result.output
    log_text = offline_cli.read_text(encoding="utf-8")
    assert "outcome=not_found" in log_text
    assert "fallback matches for account_id=5" in log_text


def test_match_command_renders_both_teams(offline_cli: Path) -> None:
    result = runner.invoke(cli_main.app, ["match", "7001"])

    assert result.exit_code == 0, result.output
    assert "Radiant" in result.output
    assert "Dire" in result.output
    assert "enemy" in result.output
    assert "Blink" in result.output


def test_invalid_configuration_exits_with_code_2(offline_cli: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENDOTA_TUI_RATE_LIMIT_PER_MINUTE", "0")
    result = runner.invoke(cli_main.app, ["player", "77", "--no-banner"])
    assert result.exit_code == 2


def test_doctor_run_offline_reports_configuration(offline_cli: Path) -> None:
    result = runner.invoke(cli_main.app, ["doctor", "run", "--offline"])

    assert result.exit_code == 0, result.output
    assert "SKIPPED" in result.output
    assert "Image protocol" in result.output


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="XDG config layout")
def test_doctor_setup_writes_the_user_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    result = runner.invoke(
        cli_main.app,
        ["doctor", "setup"],
        input="https://stats.test/api\nkitty\n30\n",
    )

    assert result.exit_code == 0, result.output
    env_text = (tmp_path / "opendota-tui" / ".env").read_text(encoding="utf-8")
    assert "OPENDOTA_TUI_IMAGE_PROTOCOL=kitty" in env_text
    assert "OPENDOTA_TUI_RATE_LIMIT_PER_MINUTE=30" in env_text
    assert "OPENDOTA_TUI_BASE_URL=https://stats.test/api" in env_text


def test_player_command_draws_the_last_hero_portrait(offline_cli: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENDOTA_TUI_IMAGE_PROTOCOL", "kitty")
    monkeypatch.setenv("OPENDOTA_TUI_CDN_BASE", "https://cdn.test")

    result = runner.invoke(cli_main.app, ["player", "77", "--no-banner"])

    assert result.exit_code == 0, result.output
    assert "Last hero: Axe" in result.output
    assert "\x1b_Ga=T,f=100," in result.output
    # The avatar URL answers 404, so the profile keeps the text placeholder.
    assert "[img]" in result.output


def test_source_checkout_entry_point_points_at_src() -> None:
    entry = Path(__file__).resolve().parents[1] / "main.py"
    spec = importlib.util.spec_from_file_location("checkout_main", entry)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    assert (module.SRC_DIR / "cli" / "main.py").is_file()
    assert callable(module.main)
