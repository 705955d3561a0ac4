"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mvnfetch.models.config import FetchConfig
from mvnfetch.models.stats import WalkStats
from mvnfetch.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ManifestParseError": [
            "• Check that the manifest path points to a pom.xml file.",
            "• Make sure the file is well-formed XML with a <project> root.",
        ],
        "ConfigurationError": [
            "• Run `mvnfetch validate` to see which setting is rejected.",
            "• Run `mvnfetch init --force` to write a fresh default config.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• Check the proxy settings with `mvnfetch --show-config`.",
            "• Run `mvnfetch diagnose` to test connectivity to the repository.",
        ],
        "ClientConnectorError": [
            "• The repository or the proxy could not be reached.",
            "• Run `mvnfetch diagnose` to test connectivity to the repository.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Increase the timeout with `--timeout`.",
            "• Try reducing the number of `--workers`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: FetchConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    proxy = config.active_proxy
    proxy_display = f"{proxy[0].upper()} {proxy[1]}" if proxy else "✗ Disabled"

    table.add_row("Repository URL:", config.repository_url)
    table.add_row("Repository Path:", f"[dim]{config.repository_path}[/dim]")
    table.add_row("Proxy:", proxy_display)
    table.add_row("Max Workers:", str(config.max_workers))
    table.add_row("Request Timeout:", f"{config.request_timeout:g}s")
    table.add_row("Max Depth:", str(config.max_depth))
    table.add_row("Event Log:", config.log_file or "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_summary_panel(stats: WalkStats, progress_stats: dict | None = None):
    """Displays the final summary of a walk."""
    console = Console()
    duration_s = stats.elapsed_seconds

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Coordinates:", f"[bold green]{stats.coordinates_visited}[/bold green]"
    )
    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.files_downloaded}[/bold green]"
    )

    skip_sections = []
    if stats.files_skipped_exists > 0:
        skip_sections.append(f"[yellow]{stats.files_skipped_exists} (present)[/yellow]")
    if stats.duplicates_skipped > 0:
        skip_sections.append(f"[yellow]{stats.duplicates_skipped} (duplicate)[/yellow]")
    if skip_sections:
        stats_table.add_row("○ Skipped:", " + ".join(skip_sections))

    if stats.files_not_found > 0:
        stats_table.add_row("⚠ Not Found:", f"[yellow]{stats.files_not_found}[/yellow]")
    if stats.files_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.files_failed}[/bold red]")
    if stats.branches_aborted > 0:
        stats_table.add_row(
            "✗ Branches Aborted:", f"[red]{stats.branches_aborted}[/red]"
        )

    stats_table.add_row("", "")  # Spacer

    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.bytes_downloaded)}[/cyan]"
    )
    avg_speed = stats.bytes_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    peak = stats.peak_in_flight
    if progress_stats:
        peak = max(peak, progress_stats.get("peak_concurrent", 0))
    stats_table.add_row("Peak Concurrent:", f"[green]{peak}[/green]")

    if stats.files_failed or stats.branches_aborted:
        title = "⚠ [bold]Walk Finished With Errors[/bold]"
        border_color = "yellow"
    else:
        title = "📦 [bold]Walk Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )

    if stats.failures:
        console.print("[bold red]Failed fetches:[/bold red]")
        for failure in stats.failures:
            console.print(f"  [red]✗[/red] {escape(failure)}")
    console.print()
