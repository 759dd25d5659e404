"""Core configuration, errors and logging."""

from cmdpal.core.config import (
    HistoryConfig,
    MiningConfig,
    RetentionConfig,
    ServerConfig,
    load_config,
)
from cmdpal.core.errors import HistoryStoreError, StoreQueryError, StoreUnavailableError

__all__ = [
    "HistoryConfig",
    "HistoryStoreError",
    "MiningConfig",
    "RetentionConfig",
    "ServerConfig",
    "StoreQueryError",
    "StoreUnavailableError",
    "load_config",
]
