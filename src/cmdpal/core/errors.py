"""Exception hierarchy for the cmdpal history store.

All store exceptions inherit from HistoryStoreError, enabling callers
to catch broad (HistoryStoreError) or narrow (e.g., StoreQueryError).
Messages are always human-readable; the IPC layer forwards them verbatim.
"""

from __future__ import annotations


class HistoryStoreError(Exception):
    """Base exception for all history store errors."""


class StoreUnavailableError(HistoryStoreError):
    """Raised when the database cannot be created, opened, or is closed.

    Examples: unwritable data directory, path pointing at a directory,
    using a store after ``close()``.
    """


class StoreQueryError(HistoryStoreError):
    """Raised when a statement fails against an open database.

    Examples: constraint violations, corrupted database file, disk full.
    """
