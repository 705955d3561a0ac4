"""
Structured logging system for walk events.
Provides JSON-formatted logs with context and forwards every event to listeners.
"""

import json
import logging
import sys
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.markup import escape

EventListener = Callable[[str, dict[str, Any]], None]


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("mvnfetch", log_path=Path("mvnfetch-events.jsonl"))
        with logger:
            logger.log(logging.DEBUG, "fetch_completed",
                       coordinate="junit:junit:4.13.2",
                       url="https://...",
                       size_bytes=384581)
    """

    def __init__(
        self,
        name: str,
        log_path: Path | None = None,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_path: File that receives one JSON object per line (None = disabled)
            enable_console: Enable console output
        """
        self.name = name
        self.log_path = log_path
        self.enable_json = log_path is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        if self.enable_json:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._json_file = open(log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return escape(" ".join(parts))

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class WalkEventLogger:
    """
    The event sink of the dependency walker. Each event is written to the
    structured log and then handed to every registered listener.
    """

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        listeners: list[EventListener] | None = None,
    ):
        self.logger = logger or StructuredLogger("mvnfetch.events")
        self._listeners: list[EventListener] = list(listeners or [])

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _emit(self, level: int, event: str, **context) -> None:
        self.logger.log(level, event, **context)
        for listener in self._listeners:
            listener(event, context)

    def walk_started(self, roots: int, repository_root: str, max_workers: int):
        self._emit(
            logging.INFO,
            "walk_started",
            roots=roots,
            repository_root=repository_root,
            max_workers=max_workers,
        )

    def walk_completed(self, visited: int, duration_s: float):
        self._emit(
            logging.INFO,
            "walk_completed",
            visited=visited,
            duration_s=round(duration_s, 2),
        )

    def coordinate_started(self, coordinate: str, depth: int):
        self._emit(
            logging.DEBUG, "coordinate_started", coordinate=coordinate, depth=depth
        )

    def duplicate_skipped(self, coordinate: str):
        self._emit(logging.DEBUG, "duplicate_skipped", coordinate=coordinate)

    def dependency_discovered(self, parent: str, coordinate: str):
        self._emit(
            logging.DEBUG, "dependency_discovered", parent=parent, coordinate=coordinate
        )

    def fetch_started(self, coordinate: str, url: str, kind: str):
        self._emit(
            logging.DEBUG, "fetch_started", coordinate=coordinate, url=url, kind=kind
        )

    def fetch_completed(self, coordinate: str, url: str, kind: str, size_bytes: int):
        self._emit(
            logging.DEBUG,
            "fetch_completed",
            coordinate=coordinate,
            url=url,
            kind=kind,
            size_bytes=size_bytes,
        )

    def fetch_skipped(self, coordinate: str, path: str, kind: str):
        self._emit(
            logging.DEBUG, "fetch_skipped", coordinate=coordinate, path=path, kind=kind
        )

    def fetch_failed(
        self, coordinate: str, url: str, kind: str, error: str, status: int | None
    ):
        level = logging.DEBUG if status == 404 else logging.WARNING
        self._emit(
            level,
            "fetch_failed",
            coordinate=coordinate,
            url=url,
            kind=kind,
            error=error,
            status=status,
        )

    def branch_aborted(self, coordinate: str, reason: str):
        self._emit(
            logging.WARNING, "branch_aborted", coordinate=coordinate, reason=reason
        )
