"""Utility modules for chatbridge."""

from chatbridge.utils.backoff import BackoffConfig, retry_call
from chatbridge.utils.datetime_utils import store_to_unix_ms, to_store_epoch, to_unix_epoch
from chatbridge.utils.latency_tracker import get_tracker, track_latency, tracked
from chatbridge.utils.logging import configure_logging, setup_logging
from chatbridge.utils.sqlite_retry import sqlite_retry

__all__ = [
    "BackoffConfig",
    "configure_logging",
    "get_tracker",
    "retry_call",
    "setup_logging",
    "sqlite_retry",
    "store_to_unix_ms",
    "to_store_epoch",
    "to_unix_epoch",
    "track_latency",
    "tracked",
]
