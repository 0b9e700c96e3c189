from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from adapters.request_log import RequestLogger
from core.domain.outcome import RequestOutcome


def _outcome(endpoint: str, outcome: str = "ok", latency: float = 12.4) -> RequestOutcome:
    return RequestOutcome(
        endpoint=endpoint,
        latency_ms=latency,
        outcome=outcome,
        timestamp=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


def test_outcome_line_format() -> None:
    line = _outcome("/players/1?x=1", "http_500", 99.6).to_line()
    assert line == "2024-05-01T12:00:00.000+00:00 GET /players/1?x=1 outcome=http_500 elapsed_ms=100"


def test_lines_are_appended_in_order(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "tui.log"
    with RequestLogger(path) as log:
        log.record(_outcome("/heroStats"))
        log.note("rate_limit_wait_ms=1500")
        log.record(_outcome("/players/1", "not_found"))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert "GET /heroStats outcome=ok" in lines[0]
    assert lines[1] == "rate_limit_wait_ms=1500"
    assert "outcome=not_found" in lines[2]


def test_existing_log_is_appended_to(tmp_path: Path) -> None:
    path = tmp_path / "tui.log"
    path.write_text("earlier\n", encoding="utf-8")
    with RequestLogger(path) as log:
        log.note("later")
    assert path.read_text(encoding="utf-8").splitlines() == ["earlier", "later"]


def test_disabled_logger_is_a_noop() -> None:
    log = RequestLogger(None)
    assert log.enabled is False
    with log:
        log.record(_outcome("/heroStats"))
        log.note("ignored")


def test_unwritable_destination_never_raises(tmp_path: Path) -> None:
    # The target is a directory, so opening it for append fails.
    target = tmp_path / "taken"
    target.mkdir()
    with RequestLogger(target) as log:
        for _ in range(5):
            log.record(_outcome("/heroStats"))
    assert target.is_dir()


def test_record_before_start_does_not_raise(tmp_path: Path) -> None:
    log = RequestLogger(tmp_path / "tui.log")
    log.note("queued")
    log.start()
    log.stop()
    assert (tmp_path / "tui.log").read_text(encoding="utf-8").splitlines() == ["queued"]


def test_loggers_do_not_accumulate_in_the_logging_registry(tmp_path: Path) -> None:
    before = set(logging.Logger.manager.loggerDict)
    for index in range(50):
        log = RequestLogger(tmp_path / f"tui-{index}.log")
        log.start()
        log.note("line")
        log.stop()
    assert set(logging.Logger.manager.loggerDict) == before


def test_lines_after_stop_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "tui.log"
    log = RequestLogger(path)
    log.start()
    log.note("kept")
    log.stop()

    log.note("late")
    log.record(_outcome("/heroStats"))
    assert log._queue.empty()
    assert path.read_text(encoding="utf-8").splitlines() == ["kept"]

    # A stopped log stays stopped.
    log.start()
    log.note("still dropped")
    log.stop()
    assert path.read_text(encoding="utf-8").splitlines() == ["kept"]
