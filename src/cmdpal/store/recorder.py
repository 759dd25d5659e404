"""Event recording mixin for HistoryStore.

Appends command invocations, search queries and resource accesses, and
enforces the retention policy:
- recent_queries and recent_resources are trimmed to their caps after
  every write (rank by timestamp, so trimming after insert is always safe)
- command_invocations older than the retention window are removed by
  ``cleanup_old_data``
"""

import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import timedelta

from cmdpal.core.config import HistoryConfig
from cmdpal.core.logging import CmdpalLogger
from cmdpal.utils.time import format_timestamp, utc_now


class RecorderMixin:
    """Mixin providing write operations for HistoryStore.

    Requires the following from the composed class:
        - _get_connection() -> context manager yielding sqlite3.Connection
        - config: HistoryConfig with retention caps
    """

    _logger: CmdpalLogger
    _get_connection: Callable[[], AbstractContextManager[sqlite3.Connection]]
    config: HistoryConfig

    def record_invocation(
        self,
        command_id: str,
        execution_time_ms: int | None = None,
        success: bool = True,
        error_message: str | None = None,
        context: str | None = None,
    ) -> None:
        """Record one execution attempt of a command.

        Args:
            command_id: Identifier of the command that ran.
            execution_time_ms: Wall time of the run, if measured.
            success: Whether the command completed successfully.
            error_message: Failure description for unsuccessful runs.
            context: Free-form context (e.g. active cluster) of the run.

        Raises:
            ValueError: If execution_time_ms is negative.
        """
        if execution_time_ms is not None and execution_time_ms < 0:
            raise ValueError(
                f"execution_time_ms must be non-negative, got {execution_time_ms}"
            )

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO command_invocations
                    (command_id, timestamp, execution_time_ms, success,
                     error_message, context)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    command_id,
                    format_timestamp(utc_now()),
                    execution_time_ms,
                    success,
                    error_message,
                    context,
                ),
            )

        self._logger.debug(
            "invocation_recorded", command_id=command_id, success=success
        )

    def record_query(self, query: str, result_count: int) -> None:
        """Record a palette search and trim the table to its cap.

        Raises:
            ValueError: If result_count is negative.
        """
        if result_count < 0:
            raise ValueError(f"result_count must be non-negative, got {result_count}")

        keep = self.config.retention.max_recent_queries
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO recent_queries (query, timestamp, result_count)
                VALUES (?, ?, ?)
                """,
                (query, format_timestamp(utc_now()), result_count),
            )
            conn.execute(
                """
                DELETE FROM recent_queries
                WHERE id NOT IN (
                    SELECT id FROM recent_queries
                    ORDER BY timestamp DESC, id DESC
                    LIMIT ?
                )
                """,
                (keep,),
            )

        self._logger.debug("query_recorded", query=query, result_count=result_count)

    def record_resource_access(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        context: str | None = None,
    ) -> None:
        """Record a resource view, counting repeat views of the same resource.

        A resource is identified by (kind, name, namespace, context), where
        a missing namespace or context matches another missing one. A repeat
        access moves the row's timestamp to now and increments access_count.
        """
        now = format_timestamp(utc_now())
        keep = self.config.retention.max_recent_resources

        with self._get_connection() as conn:
            # IS comparison so NULL namespace/context identify the same row
            row = conn.execute(
                """
                SELECT id FROM recent_resources
                WHERE kind = ? AND name = ? AND namespace IS ? AND context IS ?
                """,
                (kind, name, namespace, context),
            ).fetchone()

            if row is not None:
                conn.execute(
                    """
                    UPDATE recent_resources
                    SET timestamp = ?, access_count = access_count + 1
                    WHERE id = ?
                    """,
                    (now, row["id"]),
                )
            else:
                conn.execute(
                    """
                    INSERT INTO recent_resources
                        (kind, name, namespace, context, timestamp, access_count)
                    VALUES (?, ?, ?, ?, ?, 1)
                    """,
                    (kind, name, namespace, context, now),
                )

            conn.execute(
                """
                DELETE FROM recent_resources
                WHERE id NOT IN (
                    SELECT id FROM recent_resources
                    ORDER BY timestamp DESC, id DESC
                    LIMIT ?
                )
                """,
                (keep,),
            )

        self._logger.debug(
            "resource_access_recorded",
            kind=kind,
            name=name,
            namespace=namespace,
        )

    def cleanup_old_data(self) -> int:
        """Delete command invocations older than the retention window.

        Returns:
            Number of invocation rows deleted (0 when nothing was eligible).
        """
        cutoff = utc_now() - timedelta(days=self.config.retention.retention_days)

        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM command_invocations WHERE timestamp < ?",
                (format_timestamp(cutoff),),
            )
            deleted = cursor.rowcount

        self._logger.info("old_invocations_cleaned", deleted=deleted)
        return deleted
