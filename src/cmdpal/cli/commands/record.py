"""Recording commands.

Commands:
- record: log one command invocation
- query: log a palette search
- resource: log a resource view
- cleanup: apply the invocation retention window
"""

from __future__ import annotations

import typer

from ..helpers import get_store, handle_store_errors
from ..output import console


def record(
    command_id: str = typer.Argument(..., help="Identifier of the executed command"),
    time_ms: int | None = typer.Option(
        None,
        "--time-ms",
        "-t",
        help="Execution time in milliseconds",
    ),
    failed: bool = typer.Option(
        False,
        "--failed",
        help="Record the invocation as a failure",
    ),
    error_message: str | None = typer.Option(
        None,
        "--error",
        "-e",
        help="Error message for a failed invocation",
    ),
    context: str | None = typer.Option(
        None,
        "--context",
        "-c",
        help="Free-form context (e.g. cluster name)",
    ),
) -> None:
    """Record a command invocation.

    Examples:
        cmdpal record kubectl.get-pods --time-ms 120
        cmdpal record kubectl.delete --failed --error "forbidden"
    """
    store = get_store(console)
    with handle_store_errors(console):
        store.record_invocation(
            command_id,
            execution_time_ms=time_ms,
            success=not failed,
            error_message=error_message,
            context=context,
        )
    console.print(f"[green]Recorded[/green] {command_id}")


def query(
    text: str = typer.Argument(..., help="Search text typed into the palette"),
    results: int = typer.Option(
        0,
        "--results",
        "-r",
        help="Number of results the search returned",
    ),
) -> None:
    """Record a palette search query."""
    store = get_store(console)
    with handle_store_errors(console):
        store.record_query(text, results)
    console.print(f"[green]Recorded query[/green] {text!r}")


def resource(
    kind: str = typer.Argument(..., help="Resource kind (e.g. pod, deployment)"),
    name: str = typer.Argument(..., help="Resource name"),
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        "-N",
        help="Resource namespace",
    ),
    context: str | None = typer.Option(
        None,
        "--context",
        "-c",
        help="Cluster context",
    ),
) -> None:
    """Record a resource view (repeat views increase its access count)."""
    store = get_store(console)
    with handle_store_errors(console):
        store.record_resource_access(kind, name, namespace=namespace, context=context)
    console.print(f"[green]Recorded[/green] {kind}/{name}")


def cleanup() -> None:
    """Delete invocations older than the retention window."""
    store = get_store(console)
    with handle_store_errors(console):
        deleted = store.cleanup_old_data()
    console.print(f"Removed [bold]{deleted}[/bold] old invocation(s)")
