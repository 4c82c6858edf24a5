"""Retry SQLite calls that fail on lock contention.

Reading chat.db while the Messages app is writing to it regularly produces
"database is locked" / "database table is busy" errors that clear up after a
short wait. Every other sqlite error is raised on the first attempt.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
from collections.abc import Callable
from typing import Any, TypeVar, cast

from chatbridge.config import get_config

from .backoff import BackoffConfig, retry_call

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def is_lock_error(e: BaseException) -> bool:
    """Return True if the error is SQLite lock contention."""
    if not isinstance(e, sqlite3.OperationalError):
        return False
    text = str(e).lower()
    return "database is locked" in text or "busy" in text


def sqlite_retry(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    backoff_factor: float = 2.0,
) -> Callable[[F], F]:
    """Decorator retrying a function on SQLite lock errors.

    Settings left as None come from ``config.retry`` at call time, so a
    reloaded configuration applies to functions decorated at import.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            settings = get_config().retry
            attempts = max_attempts or settings.sqlite_max_attempts
            schedule = BackoffConfig(
                base_delay=settings.sqlite_base_delay if base_delay is None else base_delay,
                max_delay=settings.sqlite_max_delay if max_delay is None else max_delay,
                backoff_factor=backoff_factor,
            )

            def log_retry(attempt: int, e: Exception) -> None:
                logger.debug(
                    "SQLite locked/busy in %s (attempt %d/%d), retrying",
                    func.__name__,
                    attempt,
                    attempts,
                )

            return retry_call(
                functools.partial(func, *args, **kwargs),
                max_attempts=attempts,
                retry_on=is_lock_error,
                config=schedule,
                on_retry=log_retry,
            )

        return cast(F, wrapper)

    return decorator
