"""cmdpal CLI - modular command structure.

The CLI is built using Typer. Global options (store location, logging) are
handled by the app callback, which runs before every command; the command
functions live in ``cli/commands`` and are registered here.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Logging/store option state, error handling
    ├── output.py             # Rich tables and JSON output
    └── commands/
        ├── record.py         # record, query, resource, cleanup
        ├── stats.py          # stats, top, recent-*, top-resources, history
        ├── patterns.py       # detect, patterns, suggest
        └── serve.py          # serve
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from cmdpal import __version__
from cmdpal.core.config import CONFIG_PATH_ENV, DB_PATH_ENV

from . import helpers as helpers
from .commands import (
    cleanup,
    detect,
    history,
    patterns,
    query,
    recent_queries,
    recent_resources,
    record,
    resource,
    serve,
    stats,
    suggest,
    top,
    top_resources,
)
from .helpers import (
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
    set_store_options,
)
from .output import console

app = typer.Typer(
    name="cmdpal",
    help="Usage history and next-command suggestions for a command palette",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"cmdpal v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    db: Annotated[
        Path | None,
        typer.Option(
            "--db",
            help="History database path",
            envvar=DB_PATH_ENV,
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="YAML configuration file",
            envvar=CONFIG_PATH_ENV,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="CMDPAL_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="CMDPAL_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="CMDPAL_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """cmdpal - command palette usage history."""
    set_store_options(db, config)
    configure_global_logging(console)


# =============================================================================
# Command registration
# =============================================================================

# Recording
app.command()(record)
app.command()(query)
app.command()(resource)
app.command()(cleanup)

# Statistics
app.command()(stats)
app.command()(top)
app.command(name="recent-queries")(recent_queries)
app.command(name="recent-resources")(recent_resources)
app.command(name="top-resources")(top_resources)
app.command()(history)

# Patterns
app.command()(detect)
app.command()(patterns)
app.command()(suggest)

# IPC
app.command()(serve)


__all__ = ["app", "console", "main"]
