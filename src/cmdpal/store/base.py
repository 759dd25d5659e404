"""Base class for HistoryStore with connection and schema management.

This module provides the foundational ``HistoryStoreBase`` class that handles:
- Opening the SQLite database at the per-user data location
- Serializing every operation over a single shared connection
- Idempotent schema creation and additive column migration

Mixins inherit from this base to add recording, aggregation and pattern
functionality.
"""

import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from cmdpal.core.config import HistoryConfig
from cmdpal.core.errors import StoreQueryError, StoreUnavailableError
from cmdpal.core.logging import get_logger

_logger = get_logger("store")

# SQLite accepts str, int, float, bytes, and None as bind parameters.
SQLParam = str | int | float | bytes | None


class WhereBuilder:
    """Accumulates SQL WHERE clauses and their bound parameters.

    Clauses are joined with AND::

        wb = WhereBuilder()
        wb.add("kind = ?", kind)
        where_sql, params = wb.build()
        conn.execute(f"SELECT * FROM recent_resources WHERE {where_sql}", params)
    """

    __slots__ = ("_clauses", "_params")

    def __init__(self) -> None:
        self._clauses: list[str] = []
        self._params: list[SQLParam] = []

    def add(self, clause: str, *params: SQLParam) -> None:
        """Append a WHERE clause with its bound parameters."""
        self._clauses.append(clause)
        self._params.extend(params)

    def build(self) -> tuple[str, tuple[SQLParam, ...]]:
        """Return the combined WHERE fragment and parameter tuple.

        Returns ``("1=1", ())`` when no clauses have been added.
        """
        if not self._clauses:
            return "1=1", ()
        return " AND ".join(self._clauses), tuple(self._params)


def check_limit(limit: int) -> int:
    """Validate a caller-supplied row limit (a hard cap, never a minimum)."""
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    return limit


class HistoryStoreBase:
    """SQLite-backed usage history store base class.

    Holds exactly one connection for the lifetime of the store. Every public
    operation acquires ``_lock`` for its full duration via
    ``_get_connection()``, so operations are mutually exclusive: a reader
    never observes another operation's in-flight write.

    Attributes:
        db_path: Path to the SQLite database file.
        config: Effective configuration (retention caps, mining parameters).
    """

    # v1: initial four tables
    # v2: command_invocations.context, command_patterns.avg_time_between_commands
    SCHEMA_VERSION = 2

    # Columns added after a table's first release: {table: [(column, definition)]}
    _COLUMN_MIGRATIONS: dict[str, list[tuple[str, str]]] = {
        "command_invocations": [
            ("error_message", "TEXT"),
            ("context", "TEXT"),
        ],
        "command_patterns": [
            ("avg_time_between_commands", "REAL"),
        ],
    }

    def __init__(
        self,
        db_path: Path | None = None,
        config: HistoryConfig | None = None,
    ) -> None:
        """Open (creating if needed) the history database.

        Args:
            db_path: Path to the SQLite database file. Defaults to
                ``config.db_path``, or ~/.cmdpal/command-palette.db.
            config: Effective configuration. Defaults to built-in defaults.

        Raises:
            StoreUnavailableError: If the directory or database cannot be
                created or opened.
        """
        self.config = config or HistoryConfig()
        self.db_path = db_path or self.config.db_path
        self._logger = _logger
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = self._open()
        self._migrate_if_needed()
        self._logger.info("store_opened", db_path=str(self.db_path))

    def _open(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(
                f"Failed to create data directory {self.db_path.parent}: {e}"
            ) from e

        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(
                str(self.db_path), timeout=30.0, check_same_thread=False
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=30000")
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise StoreUnavailableError(
                f"Failed to open history database {self.db_path}: {e}"
            ) from e
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Hold the store lock and yield the shared connection.

        Commits when the block exits cleanly and rolls back otherwise.
        ``sqlite3.Error`` raised inside the block is re-raised as
        ``StoreQueryError``; other exceptions propagate unchanged.

        Raises:
            StoreUnavailableError: If the store has been closed.
            StoreQueryError: If a statement fails.
        """
        with self._lock:
            conn = self._conn
            if conn is None:
                raise StoreUnavailableError(
                    f"History database {self.db_path} is closed"
                )
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                self._logger.warning(
                    "store_operation_failed",
                    db_path=str(self.db_path),
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise StoreQueryError(f"Database error on {self.db_path}: {e}") from e
            except BaseException:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close the shared connection. Safe to call more than once."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._logger.debug("store_closed", db_path=str(self.db_path))

    def __enter__(self) -> "HistoryStoreBase":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _migrate_if_needed(self) -> None:
        """Create or migrate the schema. Safe to run on every open."""
        try:
            with self._get_connection() as conn:
                try:
                    row = conn.execute(
                        "SELECT version FROM schema_version LIMIT 1"
                    ).fetchone()
                    current_version = row["version"] if row else 0
                except sqlite3.OperationalError:
                    current_version = 0

                if current_version < self.SCHEMA_VERSION:
                    self._migrate_columns(conn)
                    self._create_schema(conn)
        except StoreQueryError as e:
            # A file that is not a database is as unusable as a missing one
            self.close()
            raise StoreUnavailableError(str(e)) from e

    def _migrate_columns(self, conn: sqlite3.Connection) -> None:
        """Add columns missing from tables created by older versions."""
        for table, columns in self._COLUMN_MIGRATIONS.items():
            existing = {
                row["name"]
                for row in conn.execute(f"PRAGMA table_info({table})").fetchall()
            }
            if not existing:
                continue  # table not created yet; _create_schema handles it
            for column, definition in columns:
                if column not in existing:
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                    self._logger.info("column_added", table=table, column=column)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create all tables and indexes with IF NOT EXISTS."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS command_invocations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                command_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                execution_time_ms INTEGER,
                success BOOLEAN NOT NULL DEFAULT 1,
                error_message TEXT,
                context TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS recent_queries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                query TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                result_count INTEGER NOT NULL DEFAULT 0
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS recent_resources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                name TEXT NOT NULL,
                namespace TEXT,
                context TEXT,
                timestamp TEXT NOT NULL,
                access_count INTEGER NOT NULL DEFAULT 1,
                UNIQUE(kind, name, namespace, context)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS command_patterns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                pattern_id TEXT UNIQUE NOT NULL,
                command_sequence TEXT NOT NULL,
                frequency INTEGER NOT NULL DEFAULT 1,
                confidence REAL NOT NULL,
                last_seen TEXT NOT NULL,
                avg_time_between_commands REAL
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_command_id "
            "ON command_invocations(command_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_timestamp "
            "ON command_invocations(timestamp DESC)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_recent_queries_timestamp "
            "ON recent_queries(timestamp DESC)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_recent_resources_timestamp "
            "ON recent_resources(timestamp DESC)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_recent_resources_kind "
            "ON recent_resources(kind)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_confidence "
            "ON command_patterns(confidence DESC)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_patterns_last_seen "
            "ON command_patterns(last_seen DESC)"
        )

        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (self.SCHEMA_VERSION,),
        )
        self._logger.info("schema_created", version=self.SCHEMA_VERSION)
