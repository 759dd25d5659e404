"""Usage statistics commands.

Commands:
- stats: per-command aggregates plus table counts
- top: most used commands
- recent-queries / recent-resources / top-resources
- history: invocations, newest first (failed ones with --include-failed)
"""

from __future__ import annotations

import typer

from ..helpers import get_store, handle_store_errors
from ..output import (
    console,
    history_table,
    invocations_table,
    print_json,
    queries_table,
    resources_table,
    stats_table,
)

_JSON_OPTION = typer.Option(
    False,
    "--json",
    "-j",
    help="Output as JSON for machine parsing",
)


def stats(
    command_id: str | None = typer.Argument(
        None,
        help="Only show this command. If omitted, shows every command.",
    ),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show usage statistics (successful invocations only).

    Examples:
        cmdpal stats
        cmdpal stats kubectl.get-pods --json
    """
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_command_stats(command_id)
        summary = (
            store.get_usage_summary()
            if command_id is None and not json_output
            else None
        )

    if json_output:
        print_json(results)
        return

    if not results:
        console.print("[dim]No command usage recorded yet.[/dim]")
    else:
        console.print(stats_table(results))

    if summary is not None:
        console.print(
            f"\n[bold]{summary['total_invocations']}[/bold] invocations "
            f"([red]{summary['failed_invocations']} failed[/red]), "
            f"{summary['distinct_commands']} commands, "
            f"{summary['patterns']} patterns"
        )


def top(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum commands to show"),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show the most frequently used commands."""
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_top_commands(limit)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No command usage recorded yet.[/dim]")
        return
    console.print(stats_table(results, title="Top Commands"))


def recent_queries(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum queries to show"),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show the latest search queries."""
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_recent_queries(limit)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No queries recorded yet.[/dim]")
        return
    console.print(queries_table(results))


def recent_resources(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum resources to show"),
    kind: str | None = typer.Option(None, "--kind", "-k", help="Only this kind"),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show recently viewed resources."""
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_recent_resources(limit, kind_filter=kind)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No resources recorded yet.[/dim]")
        return
    console.print(resources_table(results))


def top_resources(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum resources to show"),
    kind: str | None = typer.Option(None, "--kind", "-k", help="Only this kind"),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show the most viewed resources."""
    store = get_store(console)
    with handle_store_errors(console):
        results = store.get_top_resources(limit, kind_filter=kind)

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No resources recorded yet.[/dim]")
        return
    console.print(resources_table(results, title="Top Resources"))


def history(
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum entries to show"),
    include_failed: bool = typer.Option(
        False,
        "--include-failed",
        "-a",
        help="Also show failed invocations with their error messages",
    ),
    json_output: bool = _JSON_OPTION,
) -> None:
    """Show successful invocations (or all of them), newest first."""
    store = get_store(console)
    with handle_store_errors(console):
        if include_failed:
            invocations = store.get_recent_invocations(limit)
        else:
            results = store.get_command_history(limit)

    if include_failed:
        if json_output:
            print_json(invocations)
        elif invocations:
            console.print(invocations_table(invocations))
        else:
            console.print("[dim]No command history yet.[/dim]")
        return

    if json_output:
        print_json(results)
        return
    if not results:
        console.print("[dim]No command history yet.[/dim]")
        return
    console.print(history_table(results))
