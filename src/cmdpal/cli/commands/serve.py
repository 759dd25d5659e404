"""IPC server command."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from ..helpers import get_store, load_cli_config
from ..output import console


def serve(
    socket_path: Path | None = typer.Option(
        None,
        "--socket",
        "-s",
        help="Unix socket path (default from config)",
    ),
) -> None:
    """Serve the history store over JSON-RPC on a Unix socket.

    Runs until interrupted (Ctrl+C or SIGTERM).
    """
    from cmdpal.ipc.server import HistoryServer

    config = load_cli_config(console)
    server_config = config.server
    if socket_path is not None:
        server_config = server_config.model_copy(update={"socket_path": socket_path})

    store = get_store(console)
    console.print(
        f"[green]Serving[/green] {config.db_path} on [cyan]{server_config.socket_path}[/cyan]"
    )

    async def _run() -> None:
        server = HistoryServer.for_store(store, server_config)
        await server.serve_until_stopped()

    try:
        asyncio.run(_run())
    except OSError as e:
        console.print(f"[red]Server error:[/red] {e}")
        raise typer.Exit(1) from None
    console.print("[dim]Server stopped[/dim]")
