"""JSON-RPC 2.0 wire protocol models for cmdpal IPC.

Defines Pydantic v2 models for the JSON-RPC 2.0 envelope and for the
parameters of every ``palette.*`` method. Parameter models validate at the
serialization boundary, so the store only ever sees typed arguments.

Wire format: newline-delimited JSON (NDJSON). Each message is a single
JSON object terminated by ``\\n``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, model_validator

# Every history operation is exposed as "palette.<operation>"
METHOD_PREFIX = "palette."

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 base types
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """Inbound JSON-RPC 2.0 request.

    When ``id`` is None the message is a *notification*: it is executed
    but no response is sent.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | None = None
    id: int | str | None = None


class ErrorDetail(BaseModel):
    """Error payload within a JSON-RPC error response."""

    code: int
    message: str
    data: dict[str, Any] | None = None


class JsonRpcResponse(BaseModel):
    """Outbound JSON-RPC 2.0 success response."""

    jsonrpc: Literal["2.0"] = "2.0"
    result: Any
    id: int | str


class JsonRpcError(BaseModel):
    """Outbound JSON-RPC 2.0 error response."""

    jsonrpc: Literal["2.0"] = "2.0"
    error: ErrorDetail
    id: int | str | None


# ---------------------------------------------------------------------------
# palette.* parameter models
# ---------------------------------------------------------------------------


class RecordInvocationParams(BaseModel):
    """Parameters for ``palette.record_invocation``."""

    command_id: str = Field(min_length=1)
    execution_time_ms: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("execution_time_ms", "exec_time_ms"),
    )
    success: bool = True
    error_message: str | None = None
    context: str | None = None


class RecordQueryParams(BaseModel):
    """Parameters for ``palette.record_query``."""

    query: str
    result_count: int = Field(ge=0)


class RecordResourceParams(BaseModel):
    """Parameters for ``palette.record_resource_access``."""

    kind: str = Field(min_length=1)
    name: str = Field(min_length=1)
    namespace: str | None = None
    context: str | None = None


class CommandStatsParams(BaseModel):
    """Parameters for ``palette.command_stats``."""

    command_id: str | None = None


class LimitParams(BaseModel):
    """Parameters for list methods that only take a limit."""

    limit: int = Field(default=10, ge=0)


class ResourceListParams(BaseModel):
    """Parameters for ``palette.recent_resources`` and ``palette.top_resources``."""

    limit: int = Field(default=10, ge=0)
    kind_filter: str | None = Field(
        default=None,
        validation_alias=AliasChoices("kind_filter", "kind"),
    )


class DetectPatternsParams(BaseModel):
    """Parameters for ``palette.detect_patterns``.

    Omitted lengths fall back to the server's mining configuration.
    """

    min_sequence_length: int | None = Field(
        default=None,
        ge=2,
        validation_alias=AliasChoices("min_sequence_length", "min_len"),
    )
    max_sequence_length: int | None = Field(
        default=None,
        ge=2,
        validation_alias=AliasChoices("max_sequence_length", "max_len"),
    )

    @model_validator(mode="after")
    def _validate_bounds(self) -> DetectPatternsParams:
        if (
            self.min_sequence_length is not None
            and self.max_sequence_length is not None
            and self.max_sequence_length < self.min_sequence_length
        ):
            raise ValueError(
                "max_sequence_length must not be less than min_sequence_length"
            )
        return self


class GetPatternsParams(BaseModel):
    """Parameters for ``palette.get_patterns``."""

    min_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    limit: int = Field(default=20, ge=0)


class PatternSuggestionParams(BaseModel):
    """Parameters for ``palette.get_pattern_suggestions``."""

    last_commands: list[str]
    limit: int = Field(default=5, ge=0)


__all__ = [
    "METHOD_PREFIX",
    "CommandStatsParams",
    "DetectPatternsParams",
    "ErrorDetail",
    "GetPatternsParams",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LimitParams",
    "PatternSuggestionParams",
    "RecordInvocationParams",
    "RecordQueryParams",
    "RecordResourceParams",
    "ResourceListParams",
]
