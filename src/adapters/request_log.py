"""Append-only request log.

``record`` only enqueues (``QueueHandler`` → ``put_nowait``); a
``QueueListener`` thread writes the lines to disk. Write failures are dropped
by the file handler, so logging can never fail or slow down a lookup.
"""

from __future__ import annotations

import logging
import queue
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path

from core.domain.outcome import RequestOutcome

logger = logging.getLogger(__name__)


class _QuietFileHandler(logging.FileHandler):
    """File handler that creates its directory lazily and never reports errors."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, mode="a", encoding="utf-8", delay=True)

    def _open(self):  # type: ignore[override]
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()

    def emit(self, record: logging.LogRecord) -> None:
        # FileHandler opens the stream outside its own error handling.
        try:
            super().emit(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        return None


class _QuietQueueHandler(QueueHandler):
    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        return None


class RequestLogger:
    """Best-effort request log; a no-op when ``path`` is None."""

    def __init__(self, path: Path | None) -> None:
        self.path = path
        self._queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        self._listener: QueueListener | None = None
        self._file_handler: logging.Handler | None = None
        self._logger: logging.Logger | None = None
        self._started = False
        self._stopped = False

        if path is None:
            return

        self._file_handler = _QuietFileHandler(path)
        self._file_handler.setFormatter(logging.Formatter("%(message)s"))
        self._listener = QueueListener(self._queue, self._file_handler)

        # Unregistered, non-propagating logger: request lines never reach the
        # console and nothing outlives this instance in the logging registry.
        self._logger = logging.Logger(f"{__name__}.file")
        self._logger.propagate = False
        self._logger.setLevel(logging.INFO)
        self._logger.addHandler(_QuietQueueHandler(self._queue))

    @property
    def enabled(self) -> bool:
        return self._logger is not None

    def start(self) -> "RequestLogger":
        if self._listener is not None and not self._started and not self._stopped:
            self._listener.start()
            self._started = True
        return self

    def stop(self) -> None:
        """Flush pending lines and stop the writer thread."""

        self._stopped = True
        if self._listener is not None and self._started:
            self._listener.stop()
            self._started = False
        if self._file_handler is not None:
            self._file_handler.close()
        if self._logger is not None:
            for handler in list(self._logger.handlers):
                self._logger.removeHandler(handler)

    def __enter__(self) -> "RequestLogger":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def record(self, outcome: RequestOutcome) -> None:
        self.note(outcome.to_line())

    def note(self, line: str) -> None:
        if self._logger is None or self._stopped:
            return
        try:
            self._logger.info(line)
        except Exception:  # noqa: BLE001
            logger.debug("request log enqueue failed", exc_info=True)
