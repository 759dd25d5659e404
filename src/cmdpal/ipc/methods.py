"""History operations served as ``palette.*`` JSON-RPC methods.

Each operation validates its params with the matching model from
``cmdpal.ipc.protocol``, runs the blocking store call in a worker thread,
and converts dataclass results to plain dicts for the wire.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from cmdpal.ipc.handler import MethodHandler, RequestHandler
from cmdpal.ipc.protocol import (
    CommandStatsParams,
    DetectPatternsParams,
    GetPatternsParams,
    LimitParams,
    PatternSuggestionParams,
    RecordInvocationParams,
    RecordQueryParams,
    RecordResourceParams,
    ResourceListParams,
)
from cmdpal.store import HistoryStore


def _as_dicts(items: list[Any]) -> list[dict[str, Any]]:
    return [item.to_dict() for item in items]


def build_methods(store: HistoryStore) -> dict[str, MethodHandler]:
    """Build the operation table for *store*, keyed by bare operation name."""

    async def record_invocation(params: dict[str, Any]) -> None:
        p = RecordInvocationParams.model_validate(params)
        await asyncio.to_thread(
            store.record_invocation,
            p.command_id,
            execution_time_ms=p.execution_time_ms,
            success=p.success,
            error_message=p.error_message,
            context=p.context,
        )

    async def record_query(params: dict[str, Any]) -> None:
        p = RecordQueryParams.model_validate(params)
        await asyncio.to_thread(store.record_query, p.query, p.result_count)

    async def record_resource_access(params: dict[str, Any]) -> None:
        p = RecordResourceParams.model_validate(params)
        await asyncio.to_thread(
            store.record_resource_access,
            p.kind,
            p.name,
            namespace=p.namespace,
            context=p.context,
        )

    async def cleanup_old_data(params: dict[str, Any]) -> None:
        await asyncio.to_thread(store.cleanup_old_data)

    async def command_stats(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = CommandStatsParams.model_validate(params)
        return _as_dicts(await asyncio.to_thread(store.get_command_stats, p.command_id))

    async def top_commands(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = LimitParams.model_validate(params)
        return _as_dicts(await asyncio.to_thread(store.get_top_commands, p.limit))

    async def recent_queries(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = LimitParams.model_validate(params)
        return _as_dicts(await asyncio.to_thread(store.get_recent_queries, p.limit))

    async def recent_resources(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = ResourceListParams.model_validate(params)
        return _as_dicts(
            await asyncio.to_thread(store.get_recent_resources, p.limit, p.kind_filter)
        )

    async def top_resources(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = ResourceListParams.model_validate(params)
        return _as_dicts(
            await asyncio.to_thread(store.get_top_resources, p.limit, p.kind_filter)
        )

    async def command_history(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = LimitParams.model_validate(params)
        return _as_dicts(await asyncio.to_thread(store.get_command_history, p.limit))

    async def detect_patterns(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = DetectPatternsParams.model_validate(params)
        return _as_dicts(
            await asyncio.to_thread(
                store.detect_patterns,
                p.min_sequence_length,
                p.max_sequence_length,
            )
        )

    async def get_patterns(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = GetPatternsParams.model_validate(params)
        return _as_dicts(
            await asyncio.to_thread(store.get_patterns, p.min_confidence, p.limit)
        )

    async def get_pattern_suggestions(params: dict[str, Any]) -> list[dict[str, Any]]:
        p = PatternSuggestionParams.model_validate(params)
        return _as_dicts(
            await asyncio.to_thread(
                store.get_pattern_suggestions, p.last_commands, p.limit
            )
        )

    handlers: list[Callable[[dict[str, Any]], Any]] = [
        record_invocation,
        record_query,
        record_resource_access,
        cleanup_old_data,
        command_stats,
        top_commands,
        recent_queries,
        recent_resources,
        top_resources,
        command_history,
        detect_patterns,
        get_patterns,
        get_pattern_suggestions,
    ]
    return {fn.__name__: fn for fn in handlers}


def register_history_methods(handler: RequestHandler, store: HistoryStore) -> None:
    """Register every history operation for *store* on *handler*."""
    for operation, method in build_methods(store).items():
        handler.register(operation, method)


__all__ = ["build_methods", "register_history_methods"]
