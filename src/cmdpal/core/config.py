"""Configuration models for cmdpal.

Pydantic v2 models for the store location, retention caps, pattern mining
parameters and the IPC server. Everything has a default, so a missing config
file yields a fully working setup. YAML files are validated against
``HistoryConfig``.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from cmdpal.core.logging import get_logger

_logger = get_logger("config")

DEFAULT_DATA_DIR = Path.home() / ".cmdpal"
DEFAULT_DB_PATH = DEFAULT_DATA_DIR / "command-palette.db"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.yaml"
DEFAULT_SOCKET_PATH = DEFAULT_DATA_DIR / "cmdpal.sock"

DB_PATH_ENV = "CMDPAL_DB_PATH"
CONFIG_PATH_ENV = "CMDPAL_CONFIG"


class RetentionConfig(BaseModel):
    """Retention caps applied by the recorder."""

    retention_days: int = Field(
        default=90,
        ge=1,
        description="Command invocations older than this are removed by cleanup.",
    )
    max_recent_queries: int = Field(
        default=100,
        ge=1,
        description="Search queries kept after every insert (most recent first).",
    )
    max_recent_resources: int = Field(
        default=100,
        ge=1,
        description="Resources kept after every access (most recently touched first).",
    )


class MiningConfig(BaseModel):
    """Parameters for pattern mining and confidence scoring.

    The defaults reproduce the scoring contract:
    ``confidence = min(0.7 * min(freq / 20, 1) + 0.3 * recency, 1)`` with
    ``recency = clamp(1 / (1 + days / 30), 0.1, 1)``.
    """

    window_size: int = Field(
        default=1000,
        ge=1,
        description="Most recent successful invocations scanned per mining run.",
    )
    min_sequence_length: int = Field(
        default=2,
        ge=2,
        description="Default shortest sequence considered by detect_patterns.",
    )
    max_sequence_length: int = Field(
        default=5,
        ge=2,
        description="Default longest sequence considered by detect_patterns.",
    )
    min_pattern_frequency: int = Field(
        default=2,
        ge=1,
        description="Occurrences required before a sequence becomes a pattern.",
    )
    frequency_saturation: int = Field(
        default=20,
        ge=1,
        description="Occurrence count at which the frequency factor reaches 1.0.",
    )
    recency_decay_days: float = Field(
        default=30.0,
        gt=0.0,
        description="Days after which the recency factor has halved.",
    )
    frequency_weight: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Weight of frequency in confidence; recency gets the rest.",
    )
    recency_floor: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Lower bound of the recency factor.",
    )
    unparsable_recency: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Recency factor used when last_seen cannot be parsed.",
    )

    @model_validator(mode="after")
    def _validate_lengths(self) -> MiningConfig:
        if self.max_sequence_length < self.min_sequence_length:
            raise ValueError(
                f"max_sequence_length ({self.max_sequence_length}) must not be "
                f"less than min_sequence_length ({self.min_sequence_length})"
            )
        return self


class ServerConfig(BaseModel):
    """Unix domain socket settings for the IPC server."""

    socket_path: Path = Field(
        default=DEFAULT_SOCKET_PATH,
        description="Socket path the server binds.",
    )
    permissions: int = Field(
        default=0o600,
        ge=0,
        le=0o777,
        description="File permissions for the socket (octal). History is per-user.",
    )
    max_connections: int = Field(
        default=20,
        ge=1,
        description="Maximum concurrent client connections.",
    )


class HistoryConfig(BaseModel):
    """Root configuration for cmdpal."""

    db_path: Path = Field(
        default=DEFAULT_DB_PATH,
        description="SQLite database holding the usage history.",
    )
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    mining: MiningConfig = Field(default_factory=MiningConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> HistoryConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> HistoryConfig:
        """Load configuration from a YAML string."""
        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)


def load_config(
    config_path: Path | None = None,
    db_path: Path | None = None,
) -> HistoryConfig:
    """Resolve the effective configuration.

    Precedence for the config file: ``config_path`` argument, then the
    ``CMDPAL_CONFIG`` environment variable, then ``~/.cmdpal/config.yaml``.
    A missing file yields defaults. The database path is overridden by
    ``db_path`` or, failing that, by ``CMDPAL_DB_PATH``.

    Raises:
        pydantic.ValidationError: If the file content is invalid.
        yaml.YAMLError: If the file is not valid YAML.
    """
    if config_path is None:
        env_config = os.environ.get(CONFIG_PATH_ENV)
        config_path = Path(env_config) if env_config else DEFAULT_CONFIG_PATH

    if config_path.exists():
        config = HistoryConfig.from_yaml(config_path)
        _logger.debug("config_loaded", path=str(config_path))
    else:
        config = HistoryConfig()

    if db_path is None:
        env_db = os.environ.get(DB_PATH_ENV)
        db_path = Path(env_db) if env_db else None
    if db_path is not None:
        config = config.model_copy(update={"db_path": db_path})

    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DB_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_DB_PATH",
    "DEFAULT_SOCKET_PATH",
    "HistoryConfig",
    "MiningConfig",
    "RetentionConfig",
    "ServerConfig",
    "load_config",
]
