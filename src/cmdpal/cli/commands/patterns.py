"""Pattern mining and suggestion commands.

Commands:
- detect: mine recent history and persist patterns
- patterns: list persisted patterns
- suggest: predict the next command
"""

from __future__ import annotations

import typer

from ..helpers import get_store, handle_store_errors
from ..output import console, patterns_table, print_json, suggestions_table


def detect(
    min_len: int | None = typer.Option(
        None,
        "--min-len",
        help="Shortest sequence to mine (default from config)",
    ),
    max_len: int | None = typer.Option(
        None,
        "--max-len",
        help="Longest sequence to mine (default from config)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
) -> None:
    """Mine recurring command sequences from recent history.

    Examples:
        cmdpal detect
        cmdpal detect --min-len 2 --max-len 3 --json
    """
    store = get_store(console)
    with handle_store_errors(console):
        results = store.detect_patterns(min_len, max_len)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[yellow]No recurring sequences found.[/yellow]")
        return
    console.print(patterns_table(results))
    console.print(f"\n[bold]{len(results)}[/bold] pattern(s) stored")


def patterns(
    min_confidence: float = typer.Option(
        0.0,
        "--min-confidence",
        "-m",
        help="Only patterns at or above this confidence",
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum patterns to show"),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
) -> None:
    """List persisted command patterns."""
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_patterns(min_confidence=min_confidence, limit=limit)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No patterns yet. Run 'cmdpal detect' first.[/dim]")
        return
    console.print(patterns_table(results))


def suggest(
    last_commands: list[str] = typer.Argument(
        ...,
        help="Recent command ids, oldest first",
    ),
    limit: int = typer.Option(5, "--limit", "-n", help="Maximum suggestions"),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON for machine parsing",
    ),
) -> None:
    """Suggest the next command from the commands just run.

    Examples:
        cmdpal suggest git.add git.commit
    """
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_pattern_suggestions(last_commands, limit)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No suggestions for this sequence.[/dim]")
        return
    console.print(suggestions_table(results))
