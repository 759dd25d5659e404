"""JSON-RPC 2.0 error codes for cmdpal IPC and the exception mapping.

Everything a ``palette.*`` call can raise is turned into an error response
by ``error_from_exception``; the server itself only needs ``error_response``
for envelopes that never reach a method.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from cmdpal.core.errors import (
    HistoryStoreError,
    StoreQueryError,
    StoreUnavailableError,
)
from cmdpal.ipc.protocol import ErrorDetail, JsonRpcError

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Store failures, in the implementation-defined -32000..-32099 range
STORE_UNAVAILABLE = -32010
STORE_QUERY_FAILED = -32011

_STORE_ERROR_CODES: dict[type[HistoryStoreError], int] = {
    StoreUnavailableError: STORE_UNAVAILABLE,
    StoreQueryError: STORE_QUERY_FAILED,
}


def error_response(
    code: int,
    message: str,
    request_id: int | str | None,
    data: dict[str, Any] | None = None,
) -> JsonRpcError:
    return JsonRpcError(
        error=ErrorDetail(code=code, message=message, data=data),
        id=request_id,
    )


def describe_validation_error(exc: ValidationError) -> str:
    """One line per failing field, e.g. ``limit: Input should be ...``."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "input"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def error_from_exception(exc: Exception, request_id: int | str | None) -> JsonRpcError:
    """Map an exception raised by a ``palette.*`` method to an error response.

    Store errors keep their message verbatim so clients can show it.
    Argument problems (pydantic validation, ``ValueError`` from limit and
    length checks, ``TypeError``) become invalid params. Anything else is
    an internal error.
    """
    if isinstance(exc, HistoryStoreError):
        code = _STORE_ERROR_CODES.get(type(exc), INTERNAL_ERROR)
        return error_response(code, str(exc), request_id)
    if isinstance(exc, ValidationError):
        return error_response(
            INVALID_PARAMS,
            f"Invalid params: {describe_validation_error(exc)}",
            request_id,
        )
    if isinstance(exc, (TypeError, ValueError)):
        return error_response(INVALID_PARAMS, f"Invalid params: {exc}", request_id)
    return error_response(INTERNAL_ERROR, f"Internal error: {exc}", request_id)


__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "STORE_QUERY_FAILED",
    "STORE_UNAVAILABLE",
    "describe_validation_error",
    "error_from_exception",
    "error_response",
]
