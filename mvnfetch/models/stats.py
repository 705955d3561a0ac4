"""
Dataclass for tracking walk session statistics.
"""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class WalkStats:
    """Counts what happened during one dependency walk."""

    coordinates_visited: int = 0
    duplicates_skipped: int = 0
    dependencies_discovered: int = 0
    files_downloaded: int = 0
    files_skipped_exists: int = 0
    files_not_found: int = 0
    files_failed: int = 0
    branches_aborted: int = 0
    bytes_downloaded: int = 0
    peak_in_flight: int = 0
    failures: list[str] = field(default_factory=list)
    _started_at: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._started_at = time.monotonic()

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started_at

    def handle_event(self, event: str, context: dict[str, Any]) -> None:
        """Updates counters from a walk event. Registered as an event listener."""
        if event == "fetch_completed":
            self.files_downloaded += 1
            self.bytes_downloaded += context.get("size_bytes", 0)
        elif event == "fetch_skipped":
            self.files_skipped_exists += 1
        elif event == "fetch_failed":
            if context.get("status") == 404:
                self.files_not_found += 1
            else:
                self.files_failed += 1
                self.failures.append(f"{context.get('url')}: {context.get('error')}")
        elif event == "branch_aborted":
            self.branches_aborted += 1
        elif event == "dependency_discovered":
            self.dependencies_discovered += 1
        elif event == "coordinate_started":
            self.coordinates_visited += 1
        elif event == "duplicate_skipped":
            self.duplicates_skipped += 1
