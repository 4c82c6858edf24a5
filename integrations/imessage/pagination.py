"""Ordering and offset/limit slicing shared by the listing operations."""

from collections.abc import Sequence
from typing import TypeVar

from contracts.imessage import Message

T = TypeVar("T")


def paginate(items: Sequence[T], offset: int, limit: int) -> list[T]:
    """Return the ``[offset, offset + limit)`` window of ``items``.

    Out-of-range or negative bounds clamp; the result is empty rather than
    an error.
    """
    start = min(max(offset, 0), len(items))
    end = start + min(max(limit, 0), len(items) - start)
    return list(items[start:end])


def sort_newest_first(messages: Sequence[Message]) -> list[Message]:
    """Order messages by creation time, newest first (stable for ties)."""
    return sorted(messages, key=lambda m: m.date_created, reverse=True)
