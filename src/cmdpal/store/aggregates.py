"""Read-only statistics mixin for HistoryStore.

Provides the views the command palette renders:
- get_command_stats / get_top_commands: per-command usage aggregates
- get_recent_queries: latest searches
- get_recent_resources / get_top_resources: recently and frequently viewed
- get_command_history: successful invocations for external fuzzy search
- get_recent_invocations: raw invocations including failures
- get_usage_summary: table-level counts

Only successful invocations contribute to command statistics.
"""

import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

from cmdpal.core.logging import CmdpalLogger
from cmdpal.store.base import WhereBuilder, check_limit
from cmdpal.store.models import (
    CommandHistory,
    CommandInvocation,
    CommandStats,
    RecentQuery,
    ResourceSummary,
)

_STATS_SELECT = """
    SELECT
        command_id,
        COUNT(*) AS hit_count,
        MAX(timestamp) AS last_used,
        AVG(execution_time_ms) AS avg_execution_time
    FROM command_invocations
"""


class AggregatorMixin:
    """Mixin providing read-only aggregate views for HistoryStore.

    Requires the following from the composed class:
        - _get_connection() -> context manager yielding sqlite3.Connection
    """

    _logger: CmdpalLogger
    _get_connection: Callable[[], AbstractContextManager[sqlite3.Connection]]

    def get_command_stats(self, command_id: str | None = None) -> list[CommandStats]:
        """Usage statistics for one command, or all commands.

        Failed invocations are excluded from both the hit count and the
        average execution time.

        Args:
            command_id: Restrict to this command. None returns every command.

        Returns:
            CommandStats ordered by hit_count descending.
        """
        wb = WhereBuilder()
        wb.add("success = 1")
        if command_id is not None:
            wb.add("command_id = ?", command_id)
        where_sql, params = wb.build()

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                {_STATS_SELECT}
                WHERE {where_sql}
                GROUP BY command_id
                ORDER BY hit_count DESC, command_id
                """,
                params,
            )
            return [self._row_to_stats(row) for row in cursor.fetchall()]

    def get_top_commands(self, limit: int) -> list[CommandStats]:
        """Most frequently used commands, truncated to ``limit``."""
        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                {_STATS_SELECT}
                WHERE success = 1
                GROUP BY command_id
                ORDER BY hit_count DESC, command_id
                LIMIT ?
                """,
                (limit,),
            )
            return [self._row_to_stats(row) for row in cursor.fetchall()]

    def get_recent_queries(self, limit: int) -> list[RecentQuery]:
        """Latest search queries, newest first."""
        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT query, timestamp, result_count
                FROM recent_queries
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            )
            return [
                RecentQuery(
                    query=row["query"],
                    timestamp=row["timestamp"],
                    result_count=row["result_count"],
                )
                for row in cursor.fetchall()
            ]

    def get_recent_resources(
        self,
        limit: int,
        kind_filter: str | None = None,
    ) -> list[ResourceSummary]:
        """Recently viewed resources, newest first."""
        return self._query_resources(
            limit, kind_filter, order_by="timestamp DESC, id DESC"
        )

    def get_top_resources(
        self,
        limit: int,
        kind_filter: str | None = None,
    ) -> list[ResourceSummary]:
        """Most viewed resources; ties go to the more recently viewed."""
        return self._query_resources(
            limit, kind_filter, order_by="access_count DESC, timestamp DESC, id DESC"
        )

    def get_command_history(self, limit: int) -> list[CommandHistory]:
        """Successful invocations, newest first.

        The palette runs its fuzzy matcher over this list; no string
        matching happens here.
        """
        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT command_id, timestamp, execution_time_ms, success
                FROM command_invocations
                WHERE success = 1
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            )
            return [
                CommandHistory(
                    command_id=row["command_id"],
                    timestamp=row["timestamp"],
                    execution_time_ms=row["execution_time_ms"],
                    success=bool(row["success"]),
                )
                for row in cursor.fetchall()
            ]

    def get_recent_invocations(self, limit: int) -> list[CommandInvocation]:
        """Raw invocations including failures, newest first."""
        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT id, command_id, timestamp, execution_time_ms, success,
                       error_message, context
                FROM command_invocations
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            )
            return [
                CommandInvocation(
                    id=row["id"],
                    command_id=row["command_id"],
                    timestamp=row["timestamp"],
                    execution_time_ms=row["execution_time_ms"],
                    success=bool(row["success"]),
                    error_message=row["error_message"],
                    context=row["context"],
                )
                for row in cursor.fetchall()
            ]

    def get_usage_summary(self) -> dict[str, Any]:
        """Row counts across the history tables.

        Returns:
            Dict with total/failed invocations, distinct commands, queries,
            resources and patterns.
        """
        with self._get_connection() as conn:
            invocations = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN success = 0 THEN 1 ELSE 0 END), 0) AS failed,
                    COUNT(DISTINCT command_id) AS distinct_commands
                FROM command_invocations
                """
            ).fetchone()
            queries = conn.execute("SELECT COUNT(*) FROM recent_queries").fetchone()[0]
            resources = conn.execute(
                "SELECT COUNT(*) FROM recent_resources"
            ).fetchone()[0]
            patterns = conn.execute(
                "SELECT COUNT(*) FROM command_patterns"
            ).fetchone()[0]

        return {
            "total_invocations": invocations["total"],
            "failed_invocations": invocations["failed"],
            "distinct_commands": invocations["distinct_commands"],
            "recent_queries": queries,
            "recent_resources": resources,
            "patterns": patterns,
        }

    def _query_resources(
        self,
        limit: int,
        kind_filter: str | None,
        order_by: str,
    ) -> list[ResourceSummary]:
        check_limit(limit)
        wb = WhereBuilder()
        if kind_filter is not None:
            wb.add("kind = ?", kind_filter)
        where_sql, params = wb.build()

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT kind, name, namespace, context, timestamp, access_count
                FROM recent_resources
                WHERE {where_sql}
                ORDER BY {order_by}
                LIMIT ?
                """,
                (*params, limit),
            )
            return [
                ResourceSummary(
                    kind=row["kind"],
                    name=row["name"],
                    namespace=row["namespace"],
                    context=row["context"],
                    last_accessed=row["timestamp"],
                    access_count=row["access_count"],
                )
                for row in cursor.fetchall()
            ]

    @staticmethod
    def _row_to_stats(row: sqlite3.Row) -> CommandStats:
        avg = row["avg_execution_time"]
        return CommandStats(
            command_id=row["command_id"],
            hit_count=row["hit_count"],
            last_used=row["last_used"],
            avg_execution_time=float(avg) if avg is not None else None,
        )
