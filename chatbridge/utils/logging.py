"""Shared logging setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from chatbridge.config import ChatBridgeConfig, get_config


def setup_logging(
    name: str,
    *,
    log_dir: Path | str | None = None,
    level: int | str = logging.INFO,
    mode: str = "a",
) -> logging.Logger:
    """Configure logging with a stream handler and, optionally, a file handler.

    Args:
        name: Logger name, also used for the log filename.
        log_dir: Directory for the log file. No file handler when None.
        level: Logging level (number or name).
        mode: File open mode ("w" to overwrite, "a" to append).

    Returns:
        The named logger.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    log_file: Path | None = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_file = log_dir / f"{name}.log"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode=mode))
        except OSError as exc:
            print(f"Warning: could not open log file {log_file}: {exc}", file=sys.stderr)
            log_file = None

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(name)
    if log_file is not None:
        logger.info("Logging to %s", log_file)
    return logger


def configure_logging(name: str = "chatbridge", config: ChatBridgeConfig | None = None) -> logging.Logger:
    """Configure logging from the ``logging`` section of the configuration."""
    settings = (config or get_config()).logging
    return setup_logging(name, log_dir=settings.log_dir, level=settings.level)
