"""History store with modular mixins.

This package provides the HistoryStore class, composed from mixins that
each handle one concern:

- RecorderMixin: invocation/query/resource recording and retention
- AggregatorMixin: usage statistics and recent/top views
- PatternMixin: pattern mining, pattern queries and next-command suggestions

The base class (HistoryStoreBase) provides:
- the single shared SQLite connection and its lock
- schema creation and additive column migration

Usage:
    from cmdpal.store import HistoryStore

    store = HistoryStore()  # Uses ~/.cmdpal/command-palette.db
    store = HistoryStore(db_path=Path("/custom/path.db"))

HistoryStoreBase is listed LAST in the MRO so mixins can rely on
``_get_connection()`` and ``config`` being set up by the base initializer.
"""

import threading
from pathlib import Path

from cmdpal.core.config import HistoryConfig
from cmdpal.store.aggregates import AggregatorMixin
from cmdpal.store.base import HistoryStoreBase, WhereBuilder
from cmdpal.store.models import (
    PATTERN_SEPARATOR,
    CommandHistory,
    CommandInvocation,
    CommandPattern,
    CommandStats,
    PatternSuggestion,
    RecentQuery,
    ResourceSummary,
)
from cmdpal.store.patterns import PatternMixin
from cmdpal.store.recorder import RecorderMixin


class HistoryStore(
    RecorderMixin,
    AggregatorMixin,
    PatternMixin,
    HistoryStoreBase,
):
    """Usage history store for the command palette.

    All public operations are mutually exclusive: each holds the store lock
    for its full duration, so concurrent callers serialize.

    Example:
        >>> store = HistoryStore(db_path=Path("/tmp/history.db"))
        >>> store.record_invocation("kubectl.get", execution_time_ms=120)
        >>> store.get_top_commands(5)
    """


_history_store: HistoryStore | None = None
_history_store_lock = threading.Lock()


def get_history_store(
    db_path: Path | None = None,
    config: HistoryConfig | None = None,
) -> HistoryStore:
    """Get or create the process-wide HistoryStore.

    The store is opened once per process. Passing a different ``db_path``
    replaces the singleton (closing the previous connection).

    Args:
        db_path: Optional custom database path.
        config: Optional configuration used when the store is created.

    Returns:
        The HistoryStore singleton instance.
    """
    global _history_store

    with _history_store_lock:
        if _history_store is None or (
            db_path is not None and _history_store.db_path != db_path
        ):
            if _history_store is not None:
                _history_store.close()
                _history_store = None
            _history_store = HistoryStore(db_path=db_path, config=config)

    return _history_store


def reset_history_store() -> None:
    """Close and forget the singleton (used by tests and the CLI)."""
    global _history_store

    with _history_store_lock:
        if _history_store is not None:
            _history_store.close()
        _history_store = None


__all__ = [
    "PATTERN_SEPARATOR",
    "AggregatorMixin",
    "CommandHistory",
    "CommandInvocation",
    "CommandPattern",
    "CommandStats",
    "HistoryStore",
    "HistoryStoreBase",
    "PatternMixin",
    "PatternSuggestion",
    "RecentQuery",
    "RecorderMixin",
    "ResourceSummary",
    "WhereBuilder",
    "get_history_store",
    "reset_history_store",
]
