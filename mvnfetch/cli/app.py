"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiohttp
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from mvnfetch import __version__
from mvnfetch.core.manifest import parse_manifest_file
from mvnfetch.core.walker import DependencyGraphWalker
from mvnfetch.exceptions import MvnFetchError
from mvnfetch.models.config import FetchConfig
from mvnfetch.models.coordinate import Coordinate
from mvnfetch.models.stats import WalkStats
from mvnfetch.net.fetcher import ArtifactFetcher
from mvnfetch.storage.config_manager import ConfigManager
from mvnfetch.utils.structured_logger import StructuredLogger, WalkEventLogger

from .formatters import print_config, print_summary_panel, print_validation_table
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("mvnfetch")

app = typer.Typer(
    name="mvnfetch",
    help=(
        "Resolve the transitive dependencies of a Maven pom.xml and download them"
        " into a local repository. Use 'mvnfetch <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "mvnfetch"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Maven dependency fetcher CLI"""
    if version:
        console.print(f"[bold]mvnfetch[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("mvnfetch").setLevel(log_level)

    if show_config:
        try:
            config = ConfigManager(CONFIG_FILE).load_config()
        except MvnFetchError as e:
            console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
            raise typer.Exit(code=1) from e
        config_data = config.model_dump(include=FetchConfig.get_ini_keys())
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    mirror: str | None = typer.Option(
        None, "--mirror", help="Repository base URL to store in the config."
    ),
    socks: str | None = typer.Option(
        None, "--socks", help="SOCKS proxy URL, e.g. socks5://127.0.0.1:1080."
    ),
    http_proxy: str | None = typer.Option(
        None, "--http-proxy", help="HTTP proxy URL, e.g. http://127.0.0.1:8080."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {
            "repository_url": mirror,
            "socks_proxy": socks,
            "http_proxy": http_proxy,
        }.items()
        if value is not None
    }
    try:
        # Validate before writing anything.
        FetchConfig(**settings)
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except (MvnFetchError, ValueError) as e:
        console.print(f"[red]✗ Could not write configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to fetch! Try: [cyan]mvnfetch fetch pom.xml[/cyan]")


async def run_walk(
    config: FetchConfig, roots: list[Coordinate], show_progress: bool = True
) -> tuple[WalkStats, dict]:
    """Runs one dependency walk with progress display and event logging."""
    log_path = Path(config.log_file) if config.log_file else None
    with StructuredLogger("mvnfetch.events", log_path=log_path) as structured:
        structured.set_session_context(manifest=config.manifest_path)
        events = WalkEventLogger(structured)
        async with (
            ArtifactFetcher(config) as fetcher,
            ProgressManager(console, enabled=show_progress) as progress_manager,
        ):
            events.add_listener(progress_manager.handle_event)
            walker = DependencyGraphWalker(config, fetcher, events)
            stats = await walker.walk_all(roots, Path(config.repository_path))
            return stats, progress_manager.get_statistics()


@app.command(name="fetch")
def fetch_command(
    manifest: Path = typer.Argument(  # noqa: B008
        Path("pom.xml"), help="Path to the project manifest (pom.xml)."
    ),
    repository: str | None = typer.Option(
        None,
        "-r",
        "--repository",
        help="Local repository directory (default ./repository).",
    ),
    mirror: str | None = typer.Option(
        None, "--mirror", help="Remote repository base URL."
    ),
    socks: str | None = typer.Option(
        None, "--socks", help="SOCKS proxy URL (takes precedence over --http-proxy)."
    ),
    http_proxy: str | None = typer.Option(
        None, "--http-proxy", help="HTTP proxy URL."
    ),
    use_proxy: bool | None = typer.Option(
        None, "--proxy/--no-proxy", help="Enable or disable the configured proxy."
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Maximum number of simultaneous fetches (default 8).",
    ),
    timeout: float | None = typer.Option(
        None, "-t", "--timeout", help="Request timeout in seconds."
    ),
    max_depth: int | None = typer.Option(
        None, "--max-depth", help="Maximum depth of transitive expansion."
    ),
    log_file: str | None = typer.Option(
        None, "--log-file", help="Append every walk event as JSON to this file."
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Disable the live progress display."
    ),
):
    """Download the dependencies of a manifest, transitively."""
    cli_options = {
        key: value
        for key, value in {
            "repository_path": repository,
            "repository_url": mirror,
            "socks_proxy": socks,
            "http_proxy": http_proxy,
            "use_proxy": use_proxy,
            "max_workers": workers,
            "request_timeout": timeout,
            "max_depth": max_depth,
            "log_file": log_file,
        }.items()
        if value is not None
    }
    cli_options["manifest_path"] = str(manifest)

    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        root_manifest = parse_manifest_file(manifest)
    except MvnFetchError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e

    roots = root_manifest.coordinates()
    if not roots:
        console.print(f"[yellow]No dependencies declared in {manifest}.[/yellow]")
        raise typer.Exit()

    if proxy := config.active_proxy:
        log.info(f"Using {proxy[0].upper()} proxy: [dim]{proxy[1]}[/dim]")
    console.print(
        f"[bold cyan]📦 Resolving {len(roots)} dependencies of "
        f"{escape(str(root_manifest.project))}...[/bold cyan]"
    )

    stats, progress_stats = asyncio.run(
        run_walk(config, roots, show_progress=not no_progress)
    )
    print_summary_panel(stats, progress_stats)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except MvnFetchError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print("[yellow]○[/] No config file found, using defaults.")
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid.")
    except MvnFetchError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if proxy := config.active_proxy:
        console.print(f"[green]✓[/] Proxy in use: {proxy[0].upper()} {proxy[1]}")

    console.print(f"\n[dim]Testing connectivity to {config.repository_url}...[/dim]")

    async def test_connection() -> bool:
        async with ArtifactFetcher(config) as fetcher:
            try:
                status = await fetcher.probe(config.repository_url + "/")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                console.print(f"[red]✗ Connection test failed: {e}[/red]")
                return False
        if status < 400:
            console.print("[green]✓[/] Successfully connected to the repository.")
            return True
        console.print(
            f"[red]✗ Repository answered with status {status}.[/red]"
        )
        return False

    console.print()
    if asyncio.run(test_connection()):
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
