"""chatbridge Configuration System.

Loads and validates configuration from ~/.chatbridge/config.json.
Uses Pydantic for schema validation with sensible defaults.

Usage:
    from chatbridge.config import get_config, save_config

    config = get_config()
    print(config.store.db_path)
    print(config.query.last_message_pick)

    # Modify and save
    config.query.probe_attachment_dimensions = False
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".chatbridge" / "config.json"

# Default path to the iMessage database
DEFAULT_CHAT_DB_PATH = Path.home() / "Library" / "Messages" / "chat.db"

CONFIG_VERSION = 1

# Environment variable overriding store.db_path
DB_PATH_ENV = "CHATBRIDGE_DB_PATH"


def validate_path(path: str | Path, description: str = "path") -> Path:
    """Validate a filesystem path, rejecting path traversal attempts.

    Args:
        path: The path to validate.
        description: Human-readable description for error messages.

    Returns:
        Path object with ``~`` expanded.

    Raises:
        ValueError: If the path contains traversal sequences or is invalid.
    """
    path_str = str(path)
    if ".." in path_str.split(os.sep) or ".." in path_str.split("/"):
        raise ValueError(f"Path traversal detected in {description}: {path_str}")
    if "\x00" in path_str:
        raise ValueError(f"Null byte detected in {description}")
    return Path(path_str).expanduser()


class StoreConfig(BaseModel):
    """Chat store location and connection settings.

    Attributes:
        db_path: Path to the read-only chat.db file.
        timeout_seconds: SQLite busy timeout when the Messages app holds a lock.
    """

    db_path: Path = DEFAULT_CHAT_DB_PATH
    timeout_seconds: float = Field(default=5.0, ge=0.1, le=60.0)

    @field_validator("db_path", mode="before")
    @classmethod
    def _check_db_path(cls, value: Any) -> Path:
        return validate_path(value, "store.db_path")


class RetryConfig(BaseModel):
    """Retry settings for SQLite lock contention."""

    sqlite_max_attempts: int = Field(default=3, ge=1, le=10)
    sqlite_base_delay: float = Field(default=0.1, ge=0.0, le=5.0)
    sqlite_max_delay: float = Field(default=1.0, ge=0.0, le=30.0)


class QueryConfig(BaseModel):
    """Query layer behavior.

    Attributes:
        last_message_pick: Which message a conversation's ``last_message``
            resolves to. ``"earliest"`` orders the join by message date
            ascending, which is the long-standing behavior; ``"latest"``
            orders descending.
        known_services: Service names always reported by the service breakdown.
        probe_attachment_dimensions: Decode attachment files for width/height.
        default_limit: Page size used when callers pass no limit.
    """

    last_message_pick: Literal["earliest", "latest"] = "earliest"
    known_services: list[str] = Field(default_factory=lambda: ["iMessage", "SMS"])
    probe_attachment_dimensions: bool = True
    default_limit: int = Field(default=100, ge=1, le=10000)


class LoggingConfig(BaseModel):
    """Logging preferences."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: Path | None = None


class ChatBridgeConfig(BaseModel):
    """chatbridge configuration schema.

    Attributes:
        config_version: Schema version for migration tracking.
        store: Chat store location and connection settings.
        retry: SQLite lock retry settings.
        query: Query layer behavior.
        logging: Logging preferences.
    """

    config_version: int = CONFIG_VERSION
    store: StoreConfig = Field(default_factory=StoreConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Module-level singleton with thread safety
_config: ChatBridgeConfig | None = None
_config_lock = threading.Lock()


def _read_config_file(path: Path) -> dict[str, Any] | None:
    """Parsed JSON object from ``path``, or None when absent or unreadable."""
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return None
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in config file %s (%s), using defaults", path, e)
        return None
    except OSError as e:
        logger.warning("Cannot read config file %s (%s), using defaults", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Config file %s does not hold a JSON object, using defaults", path)
        return None
    return data


def load_config(config_path: Path | None = None) -> ChatBridgeConfig:
    """Load configuration, falling back to defaults when the file is missing or invalid.

    ``CHATBRIDGE_DB_PATH``, when set, overrides ``store.db_path``.

    Args:
        config_path: Config file to read. Defaults to ~/.chatbridge/config.json.
    """
    data = _read_config_file(config_path or CONFIG_PATH) or {}

    env_db_path = os.environ.get(DB_PATH_ENV)
    if env_db_path:
        store = data.get("store")
        store = dict(store) if isinstance(store, dict) else {}
        data = {**data, "store": {**store, "db_path": env_db_path}}

    try:
        return ChatBridgeConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Config validation failed, using defaults: %s", e)
        return ChatBridgeConfig()


def save_config(config: ChatBridgeConfig, config_path: Path | None = None) -> bool:
    """Write configuration as JSON, readable by the owner only.

    The file is replaced atomically so a concurrent reader never sees a
    partial write.

    Returns:
        True on success, False if the file could not be written.
    """
    path = config_path or CONFIG_PATH
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(config.model_dump(mode="json"), indent=2))
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        return False
    logger.debug("Configuration saved to %s", path)
    return True


def get_config() -> ChatBridgeConfig:
    """Get singleton configuration instance.

    Uses double-check locking for thread safety.

    Returns:
        Shared ChatBridgeConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton configuration for testing."""
    global _config
    with _config_lock:
        _config = None
