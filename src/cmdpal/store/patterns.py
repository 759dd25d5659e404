"""Pattern mining and suggestion mixin for HistoryStore.

Provides methods that connect the pure learning code to the database:
- detect_patterns: mine recent successful invocations, upsert patterns
- get_patterns: read persisted patterns above a confidence threshold
- get_pattern_suggestions: rank next-command predictions

command_patterns is a cache of the mining computation: rows are keyed by
pattern_id, overwritten on every run, and never deleted on their own.
"""

import json
import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager

from cmdpal.core.config import HistoryConfig
from cmdpal.core.logging import CmdpalLogger
from cmdpal.store.base import check_limit
from cmdpal.store.models import CommandPattern, PatternSuggestion


class PatternMixin:
    """Mixin providing pattern mining and suggestion methods.

    Requires the following from the composed class:
        - _get_connection() -> context manager yielding sqlite3.Connection
        - config: HistoryConfig with mining parameters
    """

    _logger: CmdpalLogger
    _get_connection: Callable[[], AbstractContextManager[sqlite3.Connection]]
    config: HistoryConfig

    def detect_patterns(
        self,
        min_sequence_length: int | None = None,
        max_sequence_length: int | None = None,
    ) -> list[CommandPattern]:
        """Mine recurring command sequences and persist them.

        Scans the most recent ``mining.window_size`` successful invocations
        in chronological order. Every qualifying pattern is re-scored and its
        ``last_seen`` set to now, including patterns whose evidence did not
        change.

        Args:
            min_sequence_length: Shortest sequence (>= 2). Defaults to config,
                lowered to ``max_sequence_length`` when only that is given.
            max_sequence_length: Longest sequence. Defaults to config, raised
                to ``min_sequence_length`` when only that is given.

        Returns:
            The refreshed patterns, highest confidence first. Empty when the
            history is shorter than ``min_sequence_length``.

        Raises:
            ValueError: If the length bounds are invalid.
        """
        from cmdpal.learning.miner import PatternMiner

        mining = self.config.mining
        # An omitted bound stretches to fit the one that was given
        min_len = min_sequence_length
        max_len = max_sequence_length
        if min_len is None:
            min_len = min(mining.min_sequence_length, max_len or mining.min_sequence_length)
        if max_len is None:
            max_len = max(mining.max_sequence_length, min_len)
        miner = PatternMiner(mining)

        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT command_id, timestamp
                FROM command_invocations
                WHERE success = 1
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (mining.window_size,),
            ).fetchall()
            commands = [(row["command_id"], row["timestamp"]) for row in reversed(rows)]

            patterns = miner.mine(commands, min_len, max_len)

            for pattern in patterns:
                conn.execute(
                    """
                    INSERT INTO command_patterns (
                        pattern_id, command_sequence, frequency, confidence,
                        last_seen, avg_time_between_commands
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(pattern_id) DO UPDATE SET
                        frequency = excluded.frequency,
                        confidence = excluded.confidence,
                        last_seen = excluded.last_seen,
                        avg_time_between_commands = excluded.avg_time_between_commands
                    """,
                    (
                        pattern.pattern_id,
                        json.dumps(pattern.command_sequence),
                        pattern.frequency,
                        pattern.confidence,
                        pattern.last_seen,
                        pattern.avg_time_between_commands,
                    ),
                )

        self._logger.info(
            "patterns_detected",
            count=len(patterns),
            scanned=len(commands),
            min_len=min_len,
            max_len=max_len,
        )
        return patterns

    def get_patterns(
        self,
        min_confidence: float = 0.0,
        limit: int = 20,
    ) -> list[CommandPattern]:
        """Persisted patterns with confidence >= ``min_confidence``.

        Returns:
            Patterns ordered by confidence, then frequency, descending.
        """
        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT pattern_id, command_sequence, frequency, confidence,
                       last_seen, avg_time_between_commands
                FROM command_patterns
                WHERE confidence >= ?
                ORDER BY confidence DESC, frequency DESC
                LIMIT ?
                """,
                (min_confidence, limit),
            )
            return [self._row_to_pattern(row) for row in cursor.fetchall()]

    def get_pattern_suggestions(
        self,
        last_commands: list[str],
        limit: int = 5,
    ) -> list[PatternSuggestion]:
        """Predict the next command from the user's recent commands.

        Args:
            last_commands: Recent command ids, most recent last.
            limit: Maximum number of suggestions.

        Returns:
            One suggestion per distinct predicted command, confidence
            descending. Empty when nothing matches.
        """
        from cmdpal.learning.suggestions import rank_suggestions

        check_limit(limit)
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT pattern_id, command_sequence, frequency, confidence,
                       last_seen, avg_time_between_commands
                FROM command_patterns
                ORDER BY confidence DESC
                """
            )
            patterns = [self._row_to_pattern(row) for row in cursor.fetchall()]

        suggestions = rank_suggestions(patterns, last_commands, limit)
        self._logger.debug(
            "suggestions_ranked",
            recent=len(last_commands),
            candidates=len(patterns),
            returned=len(suggestions),
        )
        return suggestions

    def _row_to_pattern(self, row: sqlite3.Row) -> CommandPattern:
        """Convert a command_patterns row, tolerating a corrupt sequence."""
        return CommandPattern(
            pattern_id=row["pattern_id"],
            command_sequence=self._decode_sequence(
                row["pattern_id"], row["command_sequence"]
            ),
            frequency=row["frequency"],
            confidence=row["confidence"],
            last_seen=row["last_seen"],
            avg_time_between_commands=row["avg_time_between_commands"],
        )

    def _decode_sequence(self, pattern_id: str, raw: str | None) -> list[str]:
        try:
            decoded = json.loads(raw or "")
        except (TypeError, ValueError):
            decoded = None
        if not isinstance(decoded, list) or not all(
            isinstance(item, str) for item in decoded
        ):
            self._logger.warning("malformed_pattern_sequence", pattern_id=pattern_id)
            return []
        return decoded
