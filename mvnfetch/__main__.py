"""
Entry point for ``mvnfetch`` and ``python -m mvnfetch``.
Wraps the Typer app with top-level error reporting.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from mvnfetch.cli.app import app
from mvnfetch.cli.formatters import format_error_with_suggestions
from mvnfetch.exceptions import MvnFetchError


def main() -> None:
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    log = logging.getLogger("mvnfetch")
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Walk interrupted, partial files were removed.[/yellow]")
        sys.exit(130)
    except MvnFetchError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
