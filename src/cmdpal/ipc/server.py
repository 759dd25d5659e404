"""Unix socket server exposing the history store over JSON-RPC 2.0.

Each client connection is one logging session: requests are read as
NDJSON lines, answered in order, and every log entry produced while
serving a request carries the connection's ``session_id`` and the
JSON-RPC ``request_id``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import signal
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cmdpal.core.config import ServerConfig
from cmdpal.core.logging import SessionContext, get_logger, with_context
from cmdpal.ipc.errors import (
    INVALID_REQUEST,
    PARSE_ERROR,
    describe_validation_error,
    error_response,
)
from cmdpal.ipc.handler import RequestHandler
from cmdpal.ipc.methods import register_history_methods
from cmdpal.ipc.protocol import JsonRpcError, JsonRpcRequest, JsonRpcResponse
from cmdpal.store import HistoryStore

_logger = get_logger("ipc.server")

# Longest accepted request line, newline included
MAX_MESSAGE_BYTES = 1_048_576

DEFAULT_MAX_CONNECTIONS = 20


class HistoryServer:
    """Serves ``palette.*`` requests on a Unix domain socket.

    Args:
        socket_path: Where to bind. A stale socket file is replaced; a
            symlink is refused.
        handler: Dispatcher the decoded requests are passed to.
        permissions: Mode applied to the socket file once bound.
        max_connections: Clients served at once; further clients wait.
    """

    def __init__(
        self,
        socket_path: Path,
        handler: RequestHandler,
        *,
        permissions: int = 0o600,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
    ) -> None:
        self._socket_path = socket_path
        self._handler = handler
        self._permissions = permissions
        self._max_connections = max_connections
        self._server: asyncio.Server | None = None
        self._clients: set[asyncio.Task[Any]] = set()
        self._slots = asyncio.Semaphore(max_connections)

    @classmethod
    def for_store(cls, store: HistoryStore, config: ServerConfig) -> HistoryServer:
        """Build a server exposing the history operations of *store*."""
        handler = RequestHandler()
        register_history_methods(handler, store)
        return cls(
            config.socket_path,
            handler,
            permissions=config.permissions,
            max_connections=config.max_connections,
        )

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    def _claim_socket_path(self) -> None:
        self._socket_path.parent.mkdir(parents=True, exist_ok=True)
        if self._socket_path.is_symlink():
            raise OSError(f"Socket path is a symlink: {self._socket_path}")
        # Left behind by a server that did not shut down cleanly
        self._socket_path.unlink(missing_ok=True)

    async def start(self) -> None:
        self._claim_socket_path()
        self._server = await asyncio.start_unix_server(
            self._serve_client,
            path=str(self._socket_path),
            limit=MAX_MESSAGE_BYTES,
        )
        os.chmod(self._socket_path, self._permissions)
        _logger.info(
            "ipc_server_started",
            socket_path=str(self._socket_path),
            methods=len(self._handler.methods),
            max_connections=self._max_connections,
        )

    async def stop(self) -> None:
        """Disconnect clients and remove the socket. Safe to call twice."""
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()

        clients = list(self._clients)
        for task in clients:
            task.cancel()
        await asyncio.gather(*clients, return_exceptions=True)
        await server.wait_closed()

        self._socket_path.unlink(missing_ok=True)
        _logger.info("ipc_server_stopped", disconnected=len(clients))

    async def serve_until_stopped(self, stop_event: asyncio.Event | None = None) -> None:
        """Run until *stop_event* is set or SIGINT/SIGTERM arrives."""
        stop_event = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        installed: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, stop_event.set)
                installed.append(sig)

        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()
            for sig in installed:
                loop.remove_signal_handler(sig)

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    async def _serve_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Answer NDJSON requests from one client until it hangs up.

        All log entries emitted while serving the client, including those
        from store calls in worker threads, carry the client's session id.
        """
        task = asyncio.current_task()
        if task is not None:
            self._clients.add(task)
        session = SessionContext(component="ipc")
        try:
            async with self._slots:
                with with_context(session):
                    _logger.debug("client_connected")
                    await self._answer_requests(reader, writer, session)
        except (ConnectionResetError, BrokenPipeError):
            _logger.debug("client_reset", session_id=session.session_id)
        finally:
            if task is not None:
                self._clients.discard(task)
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

    async def _answer_requests(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        session: SessionContext,
    ) -> None:
        while True:
            try:
                line = await reader.readline()
            except ValueError:
                # The stream cannot be resynchronised after an overrun
                _logger.warning("request_too_large", limit=MAX_MESSAGE_BYTES)
                await _send(
                    writer,
                    error_response(
                        PARSE_ERROR,
                        f"Parse error: request exceeds {MAX_MESSAGE_BYTES} bytes",
                        None,
                    ),
                )
                return
            if not line:
                _logger.debug("client_disconnected")
                return
            if not line.strip():
                continue

            reply = await self._reply_to(line, session)
            if reply is not None:
                await _send(writer, reply)

    async def _reply_to(
        self,
        line: bytes,
        session: SessionContext,
    ) -> JsonRpcResponse | JsonRpcError | None:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            return error_response(PARSE_ERROR, f"Parse error: {exc.msg}", None)

        try:
            request = JsonRpcRequest.model_validate(payload)
        except ValidationError as exc:
            return error_response(
                INVALID_REQUEST,
                f"Invalid request: {describe_validation_error(exc)}",
                _salvage_id(payload),
            )

        with with_context(session.with_request(request.id)):
            return await self._handler.handle(request)


def _salvage_id(payload: Any) -> int | str | None:
    """Echo a usable id from an envelope that failed validation."""
    if isinstance(payload, dict):
        request_id = payload.get("id")
        if isinstance(request_id, (int, str)) and not isinstance(request_id, bool):
            return request_id
    return None


async def _send(
    writer: asyncio.StreamWriter,
    message: JsonRpcResponse | JsonRpcError,
) -> None:
    writer.write(message.model_dump_json().encode() + b"\n")
    await writer.drain()


__all__ = ["MAX_MESSAGE_BYTES", "HistoryServer"]
