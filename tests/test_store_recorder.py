"""Tests for RecorderMixin: invocations, queries, resources and retention."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from cmdpal.store import HistoryStore

_NOW_PATCH = "cmdpal.store.recorder.utc_now"

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class TestRecordInvocation:
    def test_success_and_failure_are_stored(self, store: HistoryStore):
        store.record_invocation("kubectl.get", execution_time_ms=120)
        store.record_invocation(
            "kubectl.delete",
            execution_time_ms=40,
            success=False,
            error_message="forbidden",
            context="prod",
        )

        invocations = store.get_recent_invocations(10)
        assert [i.command_id for i in invocations] == ["kubectl.delete", "kubectl.get"]
        failed = invocations[0]
        assert failed.success is False
        assert failed.error_message == "forbidden"
        assert failed.context == "prod"
        assert invocations[1].success is True
        assert invocations[1].execution_time_ms == 120

    def test_execution_time_is_optional(self, store: HistoryStore):
        store.record_invocation("git.status")
        assert store.get_recent_invocations(1)[0].execution_time_ms is None

    def test_negative_execution_time_rejected(self, store: HistoryStore):
        with pytest.raises(ValueError, match="non-negative"):
            store.record_invocation("git.status", execution_time_ms=-5)
        assert store.get_recent_invocations(10) == []

    def test_timestamp_is_utc_rfc3339(self, store: HistoryStore):
        with patch(_NOW_PATCH, return_value=T0):
            store.record_invocation("git.status")
        assert store.get_recent_invocations(1)[0].timestamp == (
            "2026-03-01T12:00:00.000000+00:00"
        )


class TestRecordQuery:
    def test_query_is_stored(self, store: HistoryStore):
        store.record_query("get pods", 7)
        queries = store.get_recent_queries(10)
        assert len(queries) == 1
        assert queries[0].query == "get pods"
        assert queries[0].result_count == 7

    def test_negative_result_count_rejected(self, store: HistoryStore):
        with pytest.raises(ValueError):
            store.record_query("x", -1)

    def test_retention_keeps_most_recent_100(self, store: HistoryStore):
        for i in range(150):
            store.record_query(f"q{i}", i)

        kept = store.get_recent_queries(1000)
        assert len(kept) == 100
        assert {q.query for q in kept} == {f"q{i}" for i in range(50, 150)}
        assert kept[0].query == "q149"

    def test_retention_with_identical_timestamps(self, small_store: HistoryStore):
        with patch(_NOW_PATCH, return_value=T0):
            for i in range(5):
                small_store.record_query(f"q{i}", 0)
        kept = [q.query for q in small_store.get_recent_queries(10)]
        assert kept == ["q4", "q3", "q2"]


class TestRecordResourceAccess:
    def test_repeat_access_upserts(self, store: HistoryStore):
        second = T0 + timedelta(minutes=5)
        with patch(_NOW_PATCH, side_effect=[T0, second]):
            store.record_resource_access("pod", "web-1", namespace="default", context="prod")
            store.record_resource_access("pod", "web-1", namespace="default", context="prod")

        resources = store.get_recent_resources(10)
        assert len(resources) == 1
        assert resources[0].access_count == 2
        assert resources[0].last_accessed == second.isoformat(timespec="microseconds")

    def test_missing_namespace_and_context_identify_one_row(self, store: HistoryStore):
        store.record_resource_access("node", "worker-1")
        store.record_resource_access("node", "worker-1")
        resources = store.get_recent_resources(10)
        assert len(resources) == 1
        assert resources[0].access_count == 2
        assert resources[0].namespace is None

    def test_different_context_is_a_different_resource(self, store: HistoryStore):
        store.record_resource_access("pod", "web-1", namespace="default", context="prod")
        store.record_resource_access("pod", "web-1", namespace="default", context="staging")
        store.record_resource_access("pod", "web-1", namespace="default")
        assert len(store.get_recent_resources(10)) == 3

    def test_retention_trims_least_recent(self, small_store: HistoryStore):
        times = [T0 + timedelta(seconds=i) for i in range(4)]
        with patch(_NOW_PATCH, side_effect=times):
            small_store.record_resource_access("pod", "a")
            small_store.record_resource_access("pod", "b")
            small_store.record_resource_access("pod", "a")  # refreshes a
            small_store.record_resource_access("pod", "c")

        names = [r.name for r in small_store.get_recent_resources(10)]
        assert names == ["c", "a"]


class TestCleanupOldData:
    def test_removes_only_expired_invocations(self, store: HistoryStore):
        now = datetime.now(UTC)
        with patch(_NOW_PATCH, return_value=now - timedelta(days=120)):
            store.record_invocation("old.cmd")
        with patch(_NOW_PATCH, return_value=now - timedelta(days=10)):
            store.record_invocation("fresh.cmd")

        deleted = store.cleanup_old_data()

        assert deleted == 1
        remaining = [i.command_id for i in store.get_recent_invocations(10)]
        assert remaining == ["fresh.cmd"]

    def test_nothing_to_remove(self, store: HistoryStore):
        store.record_invocation("git.status")
        assert store.cleanup_old_data() == 0
        assert len(store.get_recent_invocations(10)) == 1

    def test_leaves_queries_and_resources_alone(self, store: HistoryStore):
        now = datetime.now(UTC)
        with patch(_NOW_PATCH, return_value=now - timedelta(days=365)):
            store.record_query("ancient", 1)
            store.record_resource_access("pod", "ancient")
        store.cleanup_old_data()
        assert len(store.get_recent_queries(10)) == 1
        assert len(store.get_recent_resources(10)) == 1
