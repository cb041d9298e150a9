"""Logging setup and the per-run log buffer included in notifications."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import List, Optional

PACKAGE_LOGGER = "livestream_scheduler"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class RunLogBuffer(logging.Handler):
    """Collects the formatted records of one run, WARNING and above by default."""

    def __init__(self, level: int = logging.WARNING, limit: int = 500) -> None:
        super().__init__(level=level)
        self._entries: List[str] = []
        self._limit = limit
        self._entries_lock = threading.Lock()
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:  # noqa: BLE001 - logging must never raise
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.append(message)
            if len(self._entries) > self._limit:
                del self._entries[: len(self._entries) - self._limit]

    @property
    def entries(self) -> List[str]:
        with self._entries_lock:
            return list(self._entries)

    def tail(self) -> str:
        return "\n".join(self.entries)

    def attach(self, name: str = PACKAGE_LOGGER) -> "RunLogBuffer":
        logging.getLogger(name).addHandler(self)
        return self

    def detach(self, name: str = PACKAGE_LOGGER) -> None:
        logging.getLogger(name).removeHandler(self)

    def __enter__(self) -> "RunLogBuffer":
        return self.attach()

    def __exit__(self, *_exc) -> None:
        self.detach()


def configure_logging(log_file: Optional[Path] = None, verbose: bool = False) -> None:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        return
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
