"""Exponential backoff for transient failures.

The main customer is SQLite lock contention while the Messages app writes
to the store; see :mod:`chatbridge.utils.sqlite_retry`.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

R = TypeVar("R")


@dataclass(frozen=True)
class BackoffConfig:
    """Delay schedule between attempts.

    Attributes:
        base_delay: Delay after the first failure (seconds).
        max_delay: Upper bound for any single delay (seconds).
        backoff_factor: Growth factor per failed attempt.
    """

    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)


def retry_call(
    func: Callable[[], R],
    *,
    max_attempts: int,
    retry_on: Callable[[Exception], bool],
    config: BackoffConfig,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> R:
    """Call ``func`` until it succeeds or fails in a way not worth retrying.

    The last exception propagates unchanged once ``max_attempts`` is spent or
    ``retry_on`` rejects it.
    """
    attempts = max(max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except Exception as e:
            if attempt == attempts or not retry_on(e):
                raise
            if on_retry:
                on_retry(attempt, e)
            time.sleep(config.delay_for(attempt))
    raise AssertionError("unreachable")
