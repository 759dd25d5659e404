"""Shared utilities for cmdpal CLI commands.

This module contains helpers used across multiple CLI command modules:
- Logging setup driven by the global options
- Config and store resolution driven by ``--db`` / ``--config``
- Store error handling (red message, exit code 1)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import typer
import yaml
from rich.console import Console

from cmdpal.core.config import HistoryConfig, load_config
from cmdpal.core.errors import HistoryStoreError
from cmdpal.core.logging import configure_logging, get_logger
from cmdpal.store import HistoryStore, get_history_store

_logger = get_logger("cli")


class ErrorMessages:
    """Constants for CLI error messages."""

    CONFIG_LOAD_ERROR = "Error loading config"
    STORE_ERROR = "History store error"
    INVALID_ARGUMENT = "Invalid argument"


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """Logging options collected from the global CLI flags."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    """Set the log level (DEBUG, INFO, WARNING, ERROR)."""
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    """Set the log file path; ``None`` disables file logging."""
    _log_config.file = path


def set_log_format(fmt: str) -> None:
    """Set the log format (json, console, both)."""
    _log_config.format = fmt  # type: ignore[assignment]


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per session.

    Raises:
        typer.Exit: If logging configuration fails.
    """
    if _log_config.configured:
        return

    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except ValueError as e:
        # e.g. format="both" without a log file
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def reset_logging_state() -> None:
    """Reset logging state so tests can reconfigure it."""
    _log_config.level = "WARNING"
    _log_config.file = None
    _log_config.format = "console"
    _log_config.configured = False


# =============================================================================
# Store resolution
# =============================================================================


@dataclass
class CliStoreOptions:
    """Store location options collected from the global CLI flags."""

    db_path: Path | None = None
    config_path: Path | None = None


_store_options = CliStoreOptions()


def set_store_options(db_path: Path | None, config_path: Path | None) -> None:
    """Record ``--db`` / ``--config`` for the command about to run."""
    _store_options.db_path = db_path
    _store_options.config_path = config_path


def load_cli_config(console: Console) -> HistoryConfig:
    """Load the effective configuration or exit with a red message."""
    try:
        return load_config(
            config_path=_store_options.config_path,
            db_path=_store_options.db_path,
        )
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {e}")
        raise typer.Exit(1) from None


def get_store(console: Console) -> HistoryStore:
    """Open (or reuse) the history store selected by the global options."""
    config = load_cli_config(console)
    with handle_store_errors(console):
        return get_history_store(db_path=config.db_path, config=config)


@contextmanager
def handle_store_errors(console: Console) -> Iterator[None]:
    """Turn store and argument errors into a red message plus exit code 1."""
    try:
        yield
    except HistoryStoreError as e:
        _logger.warning("cli_store_error", error=str(e))
        console.print(f"[red]{ErrorMessages.STORE_ERROR}:[/red] {e}")
        raise typer.Exit(1) from None
    except ValueError as e:
        console.print(f"[red]{ErrorMessages.INVALID_ARGUMENT}:[/red] {e}")
        raise typer.Exit(1) from None


__all__ = [
    "CliLoggingConfig",
    "CliStoreOptions",
    "ErrorMessages",
    "configure_global_logging",
    "get_store",
    "handle_store_errors",
    "load_cli_config",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
    "set_store_options",
]
