"""Convenience factory functions for common error scenarios."""

from __future__ import annotations

from chatbridge.errors.base import ErrorCode
from chatbridge.errors.store import StoreAccessError, StructuralInconsistencyError


def store_permission_denied(db_path: str | None = None) -> StoreAccessError:
    """Create a StoreAccessError for the Full Disk Access requirement."""
    return StoreAccessError(
        "Full Disk Access is required to read the chat store",
        db_path=db_path,
        requires_permission=True,
    )


def store_db_not_found(db_path: str) -> StoreAccessError:
    """Create a StoreAccessError for a missing database file."""
    return StoreAccessError(
        f"Chat store not found at: {db_path}",
        db_path=db_path,
        code=ErrorCode.STORE_DB_NOT_FOUND,
    )


def missing_conversation_join(message_guid: str, message_rowid: int) -> StructuralInconsistencyError:
    """Create a StructuralInconsistencyError for a message with no owning conversation."""
    return StructuralInconsistencyError(
        f"Message {message_guid} has no owning conversation",
        details={"message_guid": message_guid, "message_rowid": message_rowid},
    )
