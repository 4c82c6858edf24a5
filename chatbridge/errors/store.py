"""Errors raised while reading the chat store.

Usual context keys: ``db_path`` for every store error, ``table`` and
``column`` for decode failures, ``message_guid`` for structural problems.
"""

from __future__ import annotations

from typing import Any

from chatbridge.errors.base import ChatBridgeError, ErrorCode

# Steps shown to the user when the store is blocked by macOS privacy controls
FULL_DISK_ACCESS_STEPS = (
    "Open System Settings",
    "Go to Privacy & Security > Full Disk Access",
    "Add and enable the application reading the store",
)

QUERY_PREVIEW_CHARS = 200


class StoreError(ChatBridgeError):
    """Base class for chat store errors."""

    default_message = "Chat store error"
    default_code = ErrorCode.STORE_QUERY_FAILED


class StoreAccessError(StoreError):
    """Raised when the store file is missing, unreadable or blocked."""

    default_message = "Cannot access chat store"
    default_code = ErrorCode.STORE_ACCESS_DENIED

    def __init__(
        self,
        message: str | None = None,
        *,
        requires_permission: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        if requires_permission:
            self.details["requires_permission"] = True
            self.details["permission_instructions"] = list(FULL_DISK_ACCESS_STEPS)


class StoreQueryError(StoreError):
    """Raised when a statement against the store fails.

    The statement is kept as a whitespace-collapsed ``query_preview``.
    """

    default_message = "Chat store query failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        query: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        if query is not None:
            self.details["query_preview"] = _preview(query)


class StoreDecodeError(StoreError):
    """Raised when a required column is missing or has the wrong shape.

    Aborts materialization of a single row only.
    """

    default_message = "Failed to decode store row"
    default_code = ErrorCode.STORE_DECODE_FAILED


class StructuralInconsistencyError(StoreError):
    """Raised when a row exists but a relation the schema guarantees does not."""

    default_message = "Chat store is structurally inconsistent"
    default_code = ErrorCode.STORE_STRUCTURE_INVALID


def _preview(query: str) -> str:
    flat = " ".join(query.split())
    if len(flat) <= QUERY_PREVIEW_CHARS:
        return flat
    return flat[:QUERY_PREVIEW_CHARS] + "..."
