"""CLI command modules for cmdpal."""

from .patterns import detect, patterns, suggest
from .record import cleanup, query, record, resource
from .serve import serve
from .stats import (
    history,
    recent_queries,
    recent_resources,
    stats,
    top,
    top_resources,
)

__all__ = [
    "cleanup",
    "detect",
    "history",
    "patterns",
    "query",
    "recent_queries",
    "recent_resources",
    "record",
    "resource",
    "serve",
    "stats",
    "suggest",
    "top",
    "top_resources",
]
