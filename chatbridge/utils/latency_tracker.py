"""Per-operation latency accounting for the query engine.

Each public query is timed against a budget. Going over budget usually
means a join traversal fanned out over a large store, so those calls are
logged at warning level.
"""

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Operation -> budget in ms
OPERATION_BUDGETS: dict[str, float] = {
    "conversation_lookup": 100,
    "conversations_list": 500,
    "service_breakdown": 100,
    "entity_count": 50,
    "message_lookup": 100,
    "attachment_lookup": 200,
    "conversation_messages": 500,
    "last_message": 100,
    "poll": 500,
}


@dataclass(frozen=True)
class LatencyRecord:
    """One timed call."""

    operation: str
    elapsed_ms: float
    budget_ms: float | None
    recorded_at: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def over_budget(self) -> bool:
        return self.budget_ms is not None and self.elapsed_ms > self.budget_ms


class LatencyTracker:
    """Bounded, thread-safe history of operation timings."""

    def __init__(self, maxlen: int = 10000, budgets: dict[str, float] | None = None) -> None:
        self._records: deque[LatencyRecord] = deque(maxlen=maxlen)
        self._budgets = dict(OPERATION_BUDGETS if budgets is None else budgets)
        self._lock = threading.Lock()

    def record(self, operation: str, elapsed_ms: float, **metadata: Any) -> LatencyRecord:
        entry = LatencyRecord(
            operation=operation,
            elapsed_ms=elapsed_ms,
            budget_ms=self._budgets.get(operation),
            recorded_at=time.time(),
            metadata=metadata,
        )
        with self._lock:
            self._records.append(entry)

        if entry.over_budget:
            logger.warning(
                "%s took %.1fms, over its %.0fms budget %s",
                operation,
                elapsed_ms,
                entry.budget_ms,
                metadata or "",
            )
        else:
            logger.debug("%s took %.1fms", operation, elapsed_ms)
        return entry

    @contextmanager
    def track(self, operation: str, **metadata: Any) -> Iterator[None]:
        """Time the enclosed block, recording it even when it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000, **metadata)

    def records(self, operation: str | None = None) -> list[LatencyRecord]:
        with self._lock:
            entries = list(self._records)
        if operation is None:
            return entries
        return [r for r in entries if r.operation == operation]

    def over_budget(self) -> list[LatencyRecord]:
        return [r for r in self.records() if r.over_budget]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def summary(self) -> dict[str, dict[str, float]]:
        """Per-operation call count, mean and max latency, and over-budget count."""
        grouped: dict[str, list[LatencyRecord]] = {}
        for entry in self.records():
            grouped.setdefault(entry.operation, []).append(entry)
        return {
            operation: {
                "calls": len(entries),
                "mean_ms": sum(e.elapsed_ms for e in entries) / len(entries),
                "max_ms": max(e.elapsed_ms for e in entries),
                "over_budget": sum(1 for e in entries if e.over_budget),
            }
            for operation, entries in grouped.items()
        }


_tracker = LatencyTracker()


def get_tracker() -> LatencyTracker:
    """Get the process-wide tracker."""
    return _tracker


@contextmanager
def track_latency(operation: str, **metadata: Any) -> Iterator[None]:
    """Time a block with the process-wide tracker.

    Usage:
        with track_latency("message_lookup", guid=guid):
            message = ...
    """
    with _tracker.track(operation, **metadata):
        yield


def tracked(operation: str):
    """Decorator form of :func:`track_latency`."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with _tracker.track(operation):
                return func(*args, **kwargs)

        return wrapper

    return decorator
