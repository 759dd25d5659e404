"""Tests for PatternMixin: mining against the database, queries, suggestions."""

import json
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from cmdpal.core.config import HistoryConfig
from cmdpal.store import HistoryStore

_NOW_PATCH = "cmdpal.store.recorder.utc_now"


def _record_all(store: HistoryStore, commands: list[str], success: bool = True) -> None:
    for cmd in commands:
        store.record_invocation(cmd, execution_time_ms=10, success=success)


class TestDetectPatterns:
    def test_alternating_history(self, store: HistoryStore):
        _record_all(store, ["X", "Y", "X", "Y", "X", "Y"])

        patterns = store.detect_patterns(2, 2)

        by_id = {p.pattern_id: p for p in patterns}
        assert by_id["X -> Y"].frequency == 3
        assert by_id["Y -> X"].frequency == 2
        assert by_id["X -> Y"].confidence > by_id["Y -> X"].confidence

    def test_patterns_are_persisted(self, store: HistoryStore):
        _record_all(store, ["X", "Y", "X", "Y", "X", "Y"])
        store.detect_patterns(2, 2)
        stored = store.get_patterns()
        assert [p.pattern_id for p in stored] == ["X -> Y", "Y -> X"]
        assert store.get_usage_summary()["patterns"] == 2

    def test_rerun_overwrites_not_duplicates(self, store: HistoryStore):
        _record_all(store, ["X", "Y", "X", "Y"])
        store.detect_patterns(2, 2)
        _record_all(store, ["X", "Y"])
        store.detect_patterns(2, 2)

        stored = {p.pattern_id: p for p in store.get_patterns()}
        assert len(stored) == 2
        assert stored["X -> Y"].frequency == 3

    def test_failed_invocations_ignored(self, store: HistoryStore):
        _record_all(store, ["X", "Y"])
        _record_all(store, ["X", "Y", "X", "Y"], success=False)
        assert store.detect_patterns(2, 2) == []

    def test_history_shorter_than_min_len(self, store: HistoryStore):
        _record_all(store, ["a", "b"])
        assert store.detect_patterns(3, 5) == []
        assert store.get_patterns() == []

    def test_defaults_from_config(self, tmp_path: Path):
        config = HistoryConfig.model_validate({
            "db_path": str(tmp_path / "h.db"),
            "mining": {"min_sequence_length": 3, "max_sequence_length": 3},
        })
        with HistoryStore(config=config) as store:
            _record_all(store, ["a", "b", "c", "a", "b", "c"])
            patterns = store.detect_patterns()
        assert {len(p.command_sequence) for p in patterns} == {3}

    def test_window_limits_scan(self, tmp_path: Path):
        config = HistoryConfig.model_validate({
            "db_path": str(tmp_path / "h.db"),
            "mining": {"window_size": 3},
        })
        with HistoryStore(config=config) as store:
            _record_all(store, ["a", "b", "a", "b", "c", "d", "e"])
            assert store.detect_patterns(2, 2) == []

    def test_chronological_order_used(self, store: HistoryStore):
        base = datetime(2026, 1, 1, tzinfo=UTC)
        with patch(_NOW_PATCH, side_effect=[base + timedelta(seconds=i) for i in range(4)]):
            _record_all(store, ["open", "save", "open", "save"])
        by_id = {p.pattern_id: p for p in store.detect_patterns(2, 2)}
        assert by_id["open -> save"].frequency == 2
        assert by_id["open -> save"].avg_time_between_commands == pytest.approx(1.0)

    def test_invalid_bounds(self, store: HistoryStore):
        with pytest.raises(ValueError):
            store.detect_patterns(1, 3)

    def test_min_only_above_configured_max(self, store: HistoryStore):
        # default mining max_sequence_length is 5
        _record_all(store, ["a", "b", "c", "d", "e", "f"] * 2)
        patterns = store.detect_patterns(6)
        assert [p.pattern_id for p in patterns] == ["a -> b -> c -> d -> e -> f"]

    def test_max_only_below_configured_min(self, tmp_path: Path):
        config = HistoryConfig.model_validate({
            "db_path": str(tmp_path / "h.db"),
            "mining": {"min_sequence_length": 3, "max_sequence_length": 4},
        })
        with HistoryStore(config=config) as store:
            _record_all(store, ["x", "y"] * 3)
            patterns = store.detect_patterns(max_sequence_length=2)
        assert {p.pattern_id for p in patterns} == {"x -> y", "y -> x"}


class TestGetPatterns:
    def test_sequence_round_trip(self, store: HistoryStore):
        _record_all(store, ["git.add", "git.commit", "git.push"] * 2)
        store.detect_patterns(3, 3)
        stored = store.get_patterns()
        assert stored[0].command_sequence == ["git.add", "git.commit", "git.push"]
        assert stored[0].pattern_id == "git.add -> git.commit -> git.push"

    def test_min_confidence_filter(self, store: HistoryStore):
        _record_all(store, ["X", "Y", "X", "Y", "X", "Y"])
        store.detect_patterns(2, 2)
        high = store.get_patterns(min_confidence=0.4)
        assert [p.pattern_id for p in high] == ["X -> Y"]

    def test_limit(self, store: HistoryStore):
        _record_all(store, ["X", "Y", "X", "Y", "X", "Y"])
        store.detect_patterns(2, 2)
        assert len(store.get_patterns(limit=1)) == 1
        with pytest.raises(ValueError):
            store.get_patterns(limit=-1)

    def test_malformed_sequence_becomes_empty(self, store: HistoryStore, db_path: Path):
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO command_patterns "
            "(pattern_id, command_sequence, frequency, confidence, last_seen) "
            "VALUES ('bad', '{not json', 2, 0.5, '2026-01-01T00:00:00+00:00')"
        )
        conn.commit()
        conn.close()

        patterns = store.get_patterns()
        assert len(patterns) == 1
        assert patterns[0].command_sequence == []


class TestPatternSuggestions:
    def _insert(self, db_path: Path, sequence: list[str], confidence: float, frequency: int) -> None:
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO command_patterns "
            "(pattern_id, command_sequence, frequency, confidence, last_seen) "
            "VALUES (?, ?, ?, ?, '2026-01-01T00:00:00+00:00')",
            (" -> ".join(sequence), json.dumps(sequence), frequency, confidence),
        )
        conn.commit()
        conn.close()

    def test_top_suggestion(self, store: HistoryStore, db_path: Path):
        self._insert(db_path, ["A", "B", "C"], 0.9, 12)
        self._insert(db_path, ["B", "D"], 0.3, 2)

        suggestions = store.get_pattern_suggestions(["A", "B"], 5)

        assert suggestions[0].next_command == "C"
        assert suggestions[0].confidence == pytest.approx(0.9)
        assert suggestions[0].pattern_frequency == 12
        assert [s.next_command for s in suggestions] == ["C", "D"]

    def test_from_mined_history(self, store: HistoryStore):
        _record_all(store, ["git.add", "git.commit", "git.push"] * 3)
        store.detect_patterns(2, 3)
        suggestions = store.get_pattern_suggestions(["git.add", "git.commit"])
        assert suggestions[0].next_command == "git.push"

    def test_no_patterns(self, store: HistoryStore):
        assert store.get_pattern_suggestions(["A"]) == []

    def test_empty_recent_commands(self, store: HistoryStore, db_path: Path):
        self._insert(db_path, ["A", "B"], 0.9, 5)
        assert store.get_pattern_suggestions([]) == []
