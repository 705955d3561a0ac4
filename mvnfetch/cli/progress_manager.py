"""
Manages a Rich Live display for a dependency walk.
Shows overall resolution progress, the fetches in flight and running counters.
Fed entirely by walk events.
"""

import asyncio
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from mvnfetch.utils.formatting import format_size, shorten_coordinate


class ProgressManager:
    """
    Renders walk events. Register :meth:`handle_event` as a listener on the
    walker's event sink.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled

        self.overall_progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self.fetch_progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", justify="left"),
            console=console,
        )

        self._live: Live | None = None
        self._overall_task_id: TaskID | None = None
        self._active_fetches: dict[tuple[str, str], TaskID] = {}
        self._known: set[str] = set()
        self._started: set[str] = set()

        self._stats = {
            "downloaded": 0,
            "skipped": 0,
            "not_found": 0,
            "failed": 0,
            "aborted": 0,
            "bytes": 0,
            "peak_concurrent": 0,
        }

    def handle_event(self, event: str, context: dict[str, Any]) -> None:
        handler = getattr(self, f"_on_{event}", None)
        if handler is not None:
            handler(context)
            self._refresh()

    def _on_walk_started(self, context: dict[str, Any]) -> None:
        self._overall_task_id = self.overall_progress.add_task(
            "Resolving", total=context.get("roots", 0)
        )

    def _on_dependency_discovered(self, context: dict[str, Any]) -> None:
        self._known.add(context["coordinate"])

    def _on_coordinate_started(self, context: dict[str, Any]) -> None:
        self._known.add(context["coordinate"])
        self._started.add(context["coordinate"])

    def _on_fetch_started(self, context: dict[str, Any]) -> None:
        description = (
            f"{escape(shorten_coordinate(context['coordinate']))} "
            f"[dim].{context['kind']}[/dim]"
        )
        task_id = self.fetch_progress.add_task(description, total=None)
        self._active_fetches[(context["coordinate"], context["kind"])] = task_id
        self._stats["peak_concurrent"] = max(
            self._stats["peak_concurrent"], len(self._active_fetches)
        )

    def _finish_fetch(self, context: dict[str, Any]) -> None:
        task_id = self._active_fetches.pop((context["coordinate"], context["kind"]), None)
        if task_id is not None:
            self.fetch_progress.remove_task(task_id)

    def _on_fetch_completed(self, context: dict[str, Any]) -> None:
        self._finish_fetch(context)
        self._stats["downloaded"] += 1
        self._stats["bytes"] += context.get("size_bytes", 0)

    def _on_fetch_failed(self, context: dict[str, Any]) -> None:
        self._finish_fetch(context)
        if context.get("status") == 404:
            self._stats["not_found"] += 1
        else:
            self._stats["failed"] += 1

    def _on_fetch_skipped(self, context: dict[str, Any]) -> None:
        self._stats["skipped"] += 1

    def _on_branch_aborted(self, context: dict[str, Any]) -> None:
        self._stats["aborted"] += 1

    def _refresh(self) -> None:
        if self._overall_task_id is None:
            return
        self.overall_progress.update(
            self._overall_task_id,
            total=max(len(self._known), 1),
            completed=len(self._started),
        )
        if self._live is not None:
            self._live.update(self._render())

    def _render(self) -> Group:
        stats_table = Table.grid(padding=(0, 2))
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_row(
            "Downloaded:",
            f"[green]{self._stats['downloaded']}[/green]",
            "Present:",
            f"[yellow]{self._stats['skipped']}[/yellow]",
        )
        stats_table.add_row(
            "Not Found:",
            f"[yellow]{self._stats['not_found']}[/yellow]",
            "Failed:",
            f"[red]{self._stats['failed']}[/red]",
        )
        stats_table.add_row(
            "Aborted:",
            f"[red]{self._stats['aborted']}[/red]",
            "Size:",
            f"[magenta]{format_size(self._stats['bytes'])}[/magenta]",
        )

        combined = Table.grid()
        combined.add_row(stats_table)
        combined.add_row("")
        combined.add_row(self.overall_progress)

        if self._active_fetches:
            fetches = Panel(
                self.fetch_progress,
                title=f"[bold]📥 Active Fetches ({len(self._active_fetches)})[/bold]",
                border_style="green",
            )
        else:
            fetches = Panel(
                Text("Waiting for fetches...", style="dim italic", justify="center"),
                title="[bold]📥 Active Fetches[/bold]",
                border_style="green",
            )

        return Group(
            Panel(combined, title="[bold]📦 Dependency Walk[/bold]", border_style="blue"),
            fetches,
        )

    def get_statistics(self) -> dict:
        return self._stats.copy()

    async def __aenter__(self):
        if not self.enabled:
            return self
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live is not None:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
