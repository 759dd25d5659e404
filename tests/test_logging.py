"""Tests for cmdpal.core.logging module."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path

import pytest

from cmdpal.core.logging import (
    SENSITIVE_PATTERNS,
    SessionContext,
    _add_context,
    _sanitize_event_dict,
    configure_logging,
    get_current_context,
    get_logger,
    with_context,
)


class TestSanitization:
    def test_known_sensitive_patterns(self):
        assert "token" in SENSITIVE_PATTERNS
        assert "password" in SENSITIVE_PATTERNS

    def test_sensitive_keys_redacted(self):
        result = _sanitize_event_dict(None, "info", {
            "event": "resource_access_recorded",
            "bearer_token": "abc",
            "DB_PASSWORD": "hunter2",
            "kind": "pod",
        })
        assert result["bearer_token"] == "[REDACTED]"
        assert result["DB_PASSWORD"] == "[REDACTED]"
        assert result["kind"] == "pod"
        assert result["event"] == "resource_access_recorded"

    def test_nested_dicts_redacted(self):
        result = _sanitize_event_dict(None, "info", {
            "event": "e",
            "context": {"cluster": "prod", "api_key": "sk-1"},
        })
        assert result["context"] == {"cluster": "prod", "api_key": "[REDACTED]"}


class TestSessionContext:
    def test_defaults(self):
        ctx = SessionContext()
        assert len(ctx.session_id) == 12
        assert ctx.component == "unknown"
        assert "request_id" not in ctx.to_dict()

    def test_immutable(self):
        ctx = SessionContext(component="ipc")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.component = "cli"  # type: ignore[misc]

    def test_with_request(self):
        ctx = SessionContext(session_id="s1", component="ipc").with_request(7)
        assert ctx.to_dict() == {"session_id": "s1", "component": "ipc", "request_id": 7}

    def test_with_context_scopes_and_restores(self):
        assert get_current_context() is None
        ctx = SessionContext(session_id="abc", component="cli")
        with with_context(ctx) as active:
            assert active is ctx
            assert get_current_context() is ctx
        assert get_current_context() is None

    def test_context_processor_does_not_override_explicit_fields(self):
        with with_context(SessionContext(session_id="abc", component="ipc")):
            result = _add_context(None, "info", {"event": "e", "component": "store"})
        assert result["session_id"] == "abc"
        assert result["component"] == "store"


class TestCmdpalLogger:
    def test_initial_context(self):
        assert get_logger("ipc", peer="p")._context == {"component": "ipc", "peer": "p"}


class TestConfigureLogging:
    def test_both_requires_file_path(self):
        with pytest.raises(ValueError, match="file_path"):
            configure_logging(format="both")

    def test_sets_level_and_replaces_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.NullHandler())
        configure_logging(level="ERROR", format="console")
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1

    def test_json_file_output(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "cmdpal.log"
        configure_logging(level="DEBUG", format="json", file_path=log_file)

        logger = get_logger("store")
        with with_context(SessionContext(session_id="sess", component="cli")):
            logger.info("invocation_recorded", command_id="git.push", token="t0ps3cret")
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "invocation_recorded"
        assert entry["component"] == "store"
        assert entry["session_id"] == "sess"
        assert entry["command_id"] == "git.push"
        assert entry["token"] == "[REDACTED]"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_both_writes_json_to_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        log_file = tmp_path / "cmdpal.log"
        configure_logging(level="INFO", format="both", file_path=log_file)
        get_logger("store").info("query_recorded", query="get pods")
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "query_recorded"
        assert entry["query"] == "get pods"
        assert "\x1b[" not in log_file.read_text()
        assert "query_recorded" in capsys.readouterr().err

    def test_level_filters(self, tmp_path: Path):
        log_file = tmp_path / "cmdpal.log"
        configure_logging(level="WARNING", format="json", file_path=log_file)
        logger = get_logger("store")
        logger.info("dropped_event")
        logger.warning("kept_event")
        for handler in logging.getLogger().handlers:
            handler.flush()
        content = log_file.read_text()
        assert "kept_event" in content
        assert "dropped_event" not in content

    def test_module_logger_follows_later_configuration(self, tmp_path: Path):
        logger = get_logger("early")
        log_file = tmp_path / "late.log"
        configure_logging(level="INFO", format="json", file_path=log_file)
        logger.info("after_configure")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "after_configure" in log_file.read_text()
