"""IPC layer for the history store: Unix socket + JSON-RPC 2.0."""

from cmdpal.ipc.handler import RequestHandler
from cmdpal.ipc.methods import register_history_methods
from cmdpal.ipc.server import HistoryServer

__all__ = ["HistoryServer", "RequestHandler", "register_history_methods"]
