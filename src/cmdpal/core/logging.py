"""Structured logging for cmdpal.

Wraps structlog with cmdpal-specific context: every entry carries the
component that emitted it. The IPC server enters ``with_context()`` for
each request, so entries logged while serving it (including those from
store calls run in worker threads) carry the connection session id and
the JSON-RPC request id.

Example usage:
    from cmdpal.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", format="console")

    logger = get_logger("store")
    logger.info("invocation_recorded", command_id="kubectl.get")

    with with_context(SessionContext(component="ipc").with_request(7)):
        logger.debug("rpc_dispatch")  # includes session_id, request_id
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Keys whose values are replaced with [REDACTED] before rendering.
# Resource contexts can embed cluster credentials, so this is applied to
# nested dicts as well.
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
    "bearer",
})

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console", "both"]

@dataclass(frozen=True)
class SessionContext:
    """Correlation identifiers merged into every log entry of a scope.

    Attributes:
        session_id: Identifier of the caller session (CLI run, IPC connection).
        component: Component handling the session (e.g. "cli", "ipc").
        request_id: Optional identifier of the request being served.
    """

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    component: str = "unknown"
    request_id: str | int | None = None

    def with_request(self, request_id: str | int | None) -> SessionContext:
        """Return a copy of this context bound to a request id."""
        return SessionContext(
            session_id=self.session_id,
            component=self.component,
            request_id=request_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dict for logging, omitting unset fields."""
        result: dict[str, Any] = {
            "session_id": self.session_id,
            "component": self.component,
        }
        if self.request_id is not None:
            result["request_id"] = self.request_id
        return result


_current_context: ContextVar[SessionContext | None] = ContextVar(
    "cmdpal_context", default=None
)


def get_current_context() -> SessionContext | None:
    """Get the active SessionContext, if any."""
    return _current_context.get()


@contextmanager
def with_context(ctx: SessionContext) -> Iterator[SessionContext]:
    """Activate ``ctx`` for all log calls made inside the block.

    Fields explicitly passed to a log call win over context fields.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _redact(key: str, value: Any) -> Any:
    lowered = key.lower()
    if any(pattern in lowered for pattern in SENSITIVE_PATTERNS):
        return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts values of sensitive keys."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _redact(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _redact(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO 8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that merges the active SessionContext."""
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class CmdpalLogger:
    """Component-bound logger wrapper around structlog.

    The structlog logger is resolved on every call rather than cached, so
    loggers created at import time still follow a ``configure_logging()``
    issued later by the CLI.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)


def _build_processors(
    include_timestamps: bool,
    include_context: bool,
) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
    ]
    if include_context:
        processors.append(_add_context)
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        # Rendering happens per handler, see _handler_with_renderer()
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ])
    return processors


def _handler_with_renderer(
    handler: logging.Handler,
    renderer: Processor,
    level: int,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=[structlog.stdlib.add_log_level, _add_timestamp],
        )
    )
    return handler


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
    include_context: bool = True,
) -> None:
    """Configure cmdpal structured logging.

    Call once at startup, before the first log call that should be captured.

    Args:
        level: Minimum log level to capture.
        format: "console" for colored human output on stderr, "json" for one
            JSON object per line (to ``file_path`` or stdout), "both" for
            console on stderr plus JSON to ``file_path``.
        file_path: Log file. Required when format is "both".
        max_file_size_mb: Size at which the log file is rotated.
        backup_count: Number of rotated files kept.
        include_timestamps: Add an ISO 8601 timestamp to each entry.
        include_context: Merge the active SessionContext into each entry.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        handlers.append(
            _handler_with_renderer(
                logging.StreamHandler(sys.stderr),
                structlog.dev.ConsoleRenderer(colors=True),
                log_level,
            )
        )

    if format in ("json", "both"):
        json_handler: logging.Handler
        if file_path is not None:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            json_handler = logging.StreamHandler(sys.stdout)
        handlers.append(
            _handler_with_renderer(
                json_handler,
                structlog.processors.JSONRenderer(),
                log_level,
            )
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    # cache_logger_on_first_use=False keeps module-level loggers reconfigurable
    structlog.configure(
        processors=_build_processors(include_timestamps, include_context),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> CmdpalLogger:
    """Get a logger bound to a component name.

    Example:
        logger = get_logger("store.patterns")
        logger.info("patterns_detected", count=4)
    """
    return CmdpalLogger(component, **initial_context)


__all__ = [
    "SENSITIVE_PATTERNS",
    "CmdpalLogger",
    "LogFormat",
    "LogLevel",
    "SessionContext",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
