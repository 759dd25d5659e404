"""Data models for the history store.

Dataclasses for the rows and aggregate views returned by HistoryStore.
Timestamps stay as the RFC 3339 strings stored in SQLite so callers can
render or compare them without another round of parsing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

PATTERN_SEPARATOR = " -> "
"""Separator joining command ids into a pattern_id."""


@dataclass
class CommandInvocation:
    """One execution attempt of a named command."""

    id: int
    command_id: str
    timestamp: str
    execution_time_ms: int | None
    success: bool
    error_message: str | None = None
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CommandStats:
    """Aggregated usage of a command over its successful invocations."""

    command_id: str
    hit_count: int
    last_used: str
    avg_execution_time: float | None = None
    """Mean execution time in ms, None when no successful run was timed."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RecentQuery:
    """A search query typed into the palette."""

    query: str
    timestamp: str
    result_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ResourceSummary:
    """A viewed resource with its access counter."""

    kind: str
    name: str
    namespace: str | None
    context: str | None
    last_accessed: str
    access_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CommandHistory:
    """A successful invocation, used as a fuzzy-search candidate."""

    command_id: str
    timestamp: str
    execution_time_ms: int | None
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CommandPattern:
    """A recurring ordered sequence of commands.

    ``confidence`` is recomputed on every mining run and blends how often
    the sequence occurred with how recently it was last seen.
    """

    pattern_id: str
    command_sequence: list[str] = field(default_factory=list)
    frequency: int = 0
    confidence: float = 0.0
    last_seen: str = ""
    avg_time_between_commands: float | None = None
    """Mean gap in seconds between consecutive commands of the sequence."""

    @staticmethod
    def make_pattern_id(sequence: list[str]) -> str:
        """Canonical id for a sequence; identical sequences share an id."""
        return PATTERN_SEPARATOR.join(sequence)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PatternSuggestion:
    """A predicted next command."""

    next_command: str
    confidence: float
    pattern_frequency: int
    context: str
    """pattern_id of the pattern that produced the prediction."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "PATTERN_SEPARATOR",
    "CommandHistory",
    "CommandInvocation",
    "CommandPattern",
    "CommandStats",
    "PatternSuggestion",
    "RecentQuery",
    "ResourceSummary",
]
