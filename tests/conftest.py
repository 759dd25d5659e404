"""Pytest fixtures for cmdpal tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from cmdpal.core.config import HistoryConfig
from cmdpal.store import HistoryStore, reset_history_store


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI state before and after each test."""
    from cmdpal.cli import helpers as cli_helpers

    cli_helpers.reset_logging_state()
    cli_helpers.set_store_options(None, None)

    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_logging_state()
    cli_helpers.set_store_options(None, None)
    reset_history_store()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real ~/.cmdpal data and config."""
    monkeypatch.delenv("CMDPAL_DB_PATH", raising=False)
    monkeypatch.setenv("CMDPAL_CONFIG", str(tmp_path / "no-such-config.yaml"))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Database path inside a not-yet-existing data directory."""
    return tmp_path / "data" / "command-palette.db"


@pytest.fixture
def store(db_path: Path) -> Generator[HistoryStore, None, None]:
    """A fresh HistoryStore on a temporary database."""
    history_store = HistoryStore(db_path=db_path)
    yield history_store
    history_store.close()


@pytest.fixture
def small_store(tmp_path: Path) -> Generator[HistoryStore, None, None]:
    """A HistoryStore with tiny retention caps."""
    config = HistoryConfig.model_validate({
        "db_path": str(tmp_path / "small.db"),
        "retention": {"max_recent_queries": 3, "max_recent_resources": 2},
    })
    history_store = HistoryStore(config=config)
    yield history_store
    history_store.close()
