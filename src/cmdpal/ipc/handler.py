"""Dispatch of ``palette.<operation>`` JSON-RPC calls.

Operations are registered under their bare name (``record_query``); the
handler owns the namespace prefix and only resolves methods inside it, so
``palette.record_query`` reaches the operation and ``other.record_query``
is reported as not found.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Coroutine
from typing import Any

from cmdpal.core.logging import get_logger
from cmdpal.ipc.errors import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    error_from_exception,
    error_response,
)
from cmdpal.ipc.protocol import (
    METHOD_PREFIX,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
)

_logger = get_logger("ipc.handler")

# Receives the params dict and returns the result value.
MethodHandler = Callable[[dict[str, Any]], Coroutine[Any, Any, Any]]


class RequestHandler:
    """Routes namespaced JSON-RPC requests to async operations.

    A ``None`` result is sent as ``null``. Notifications (no ``id``) are
    executed but never answered, not even with an error.
    """

    def __init__(self, prefix: str = METHOD_PREFIX) -> None:
        self._prefix = prefix
        self._operations: dict[str, MethodHandler] = {}

    def register(self, operation: str, handler: MethodHandler) -> None:
        self._operations[operation] = handler

    @property
    def methods(self) -> list[str]:
        """Fully qualified method names, e.g. ``palette.top_commands``."""
        return [f"{self._prefix}{name}" for name in self._operations]

    def resolve(self, method: str) -> MethodHandler | None:
        if not method.startswith(self._prefix):
            return None
        return self._operations.get(method.removeprefix(self._prefix))

    async def handle(
        self,
        request: JsonRpcRequest,
    ) -> JsonRpcResponse | JsonRpcError | None:
        operation = self.resolve(request.method)
        if operation is None:
            _logger.debug("rpc_unknown_method", method=request.method)
            if request.id is None:
                return None
            return error_response(
                METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
                request.id,
                data={"method": request.method, "namespace": self._prefix},
            )

        started = time.monotonic()
        _logger.debug("rpc_dispatch", method=request.method)
        try:
            result = await operation(request.params or {})
        except Exception as exc:
            error = error_from_exception(exc, request.id)
            _log_failure(request.method, exc, error)
            return None if request.id is None else error

        _logger.debug(
            "rpc_completed",
            method=request.method,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        if request.id is None:
            return None
        return JsonRpcResponse(result=result, id=request.id)


def _log_failure(method: str, exc: Exception, error: JsonRpcError) -> None:
    if error.error.code == INTERNAL_ERROR:
        _logger.error("rpc_internal_error", method=method, error=str(exc), exc_info=True)
    else:
        _logger.warning(
            "rpc_request_rejected",
            method=method,
            code=error.error.code,
            error=error.error.message,
        )


__all__ = ["MethodHandler", "RequestHandler"]
