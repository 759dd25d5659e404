"""Rich output formatting for the cmdpal CLI.

Table builders for each history view plus a JSON printer that keeps Rich
from wrapping or highlighting machine-readable output.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from cmdpal.store.models import (
    PATTERN_SEPARATOR,
    CommandHistory,
    CommandInvocation,
    CommandPattern,
    CommandStats,
    PatternSuggestion,
    RecentQuery,
    ResourceSummary,
)

# Commands should use this console; --json output goes through print_json().
console = Console()


def print_json(items: Sequence[Any] | dict[str, Any]) -> None:
    """Print dataclass results (or a plain dict) as indented JSON."""
    if isinstance(items, dict):
        payload: Any = items
    else:
        payload = [item.to_dict() for item in items]
    console.print(
        json.dumps(payload, indent=2, default=str),
        soft_wrap=True,
        highlight=False,
        markup=False,
    )


def format_ms(value: float | int | None) -> str:
    """Format a millisecond duration, ``-`` when unknown."""
    if value is None:
        return "-"
    if value >= 1000:
        return f"{value / 1000:.2f}s"
    return f"{value:.0f}ms"


def format_confidence(value: float) -> str:
    """Color a [0, 1] confidence score."""
    if value >= 0.7:
        color = "green"
    elif value >= 0.4:
        color = "yellow"
    else:
        color = "red"
    return f"[{color}]{value:.2f}[/{color}]"


def stats_table(stats: Sequence[CommandStats], title: str = "Command Usage") -> Table:
    table = Table(title=title)
    table.add_column("Command", style="cyan")
    table.add_column("Hits", justify="right", style="bold")
    table.add_column("Last Used", style="dim")
    table.add_column("Avg Time", justify="right")
    for s in stats:
        table.add_row(
            s.command_id,
            str(s.hit_count),
            s.last_used,
            format_ms(s.avg_execution_time),
        )
    return table


def queries_table(queries: Sequence[RecentQuery]) -> Table:
    table = Table(title="Recent Queries")
    table.add_column("Query", style="cyan")
    table.add_column("Results", justify="right")
    table.add_column("When", style="dim")
    for q in queries:
        table.add_row(q.query, str(q.result_count), q.timestamp)
    return table


def resources_table(
    resources: Sequence[ResourceSummary],
    title: str = "Recent Resources",
) -> Table:
    table = Table(title=title)
    table.add_column("Kind", style="magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Namespace")
    table.add_column("Context", style="dim")
    table.add_column("Views", justify="right", style="bold")
    table.add_column("Last Accessed", style="dim")
    for r in resources:
        table.add_row(
            r.kind,
            r.name,
            r.namespace or "-",
            r.context or "-",
            str(r.access_count),
            r.last_accessed,
        )
    return table


def history_table(history: Sequence[CommandHistory]) -> Table:
    table = Table(title="Command History")
    table.add_column("Command", style="cyan")
    table.add_column("When", style="dim")
    table.add_column("Time", justify="right")
    for h in history:
        table.add_row(h.command_id, h.timestamp, format_ms(h.execution_time_ms))
    return table


def invocations_table(invocations: Sequence[CommandInvocation]) -> Table:
    table = Table(title="Command Invocations")
    table.add_column("Command", style="cyan")
    table.add_column("Status")
    table.add_column("When", style="dim")
    table.add_column("Time", justify="right")
    table.add_column("Error", style="red")
    for inv in invocations:
        status = "[green]ok[/green]" if inv.success else "[red]failed[/red]"
        table.add_row(
            inv.command_id,
            status,
            inv.timestamp,
            format_ms(inv.execution_time_ms),
            inv.error_message or "",
        )
    return table


def patterns_table(patterns: Sequence[CommandPattern]) -> Table:
    table = Table(title="Command Patterns")
    table.add_column("Sequence", style="cyan")
    table.add_column("Freq", justify="right", style="bold")
    table.add_column("Confidence", justify="right")
    table.add_column("Avg Gap", justify="right")
    table.add_column("Last Seen", style="dim")
    for p in patterns:
        gap = p.avg_time_between_commands
        table.add_row(
            PATTERN_SEPARATOR.join(p.command_sequence) or p.pattern_id,
            str(p.frequency),
            format_confidence(p.confidence),
            f"{gap:.1f}s" if gap is not None else "-",
            p.last_seen,
        )
    return table


def suggestions_table(suggestions: Sequence[PatternSuggestion]) -> Table:
    table = Table(title="Suggested Next Commands")
    table.add_column("Command", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Freq", justify="right")
    table.add_column("Because Of", style="dim")
    for s in suggestions:
        table.add_row(
            s.next_command,
            format_confidence(s.confidence),
            str(s.pattern_frequency),
            s.context,
        )
    return table
