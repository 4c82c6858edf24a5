"""Unified exception hierarchy for chatbridge.

Exception Hierarchy:
    ChatBridgeError (base)
    +-- ConfigurationError - Configuration and settings issues
    +-- StoreError - Chat store access and query issues
        +-- StoreAccessError - File missing or permission denied
        +-- StoreQueryError - Statement failure
        +-- StoreDecodeError - Required column missing or malformed
        +-- StructuralInconsistencyError - Mandatory relation absent

Usage:
    from chatbridge.errors import StoreError

    try:
        message = reader.get_message_by_guid(guid)
    except StoreError as e:
        logger.error("Store error: %s (code: %s)", e.message, e.code)
"""

from chatbridge.errors.base import ChatBridgeError, ConfigurationError, ErrorCode
from chatbridge.errors.factories import (
    missing_conversation_join,
    store_db_not_found,
    store_permission_denied,
)
from chatbridge.errors.store import (
    StoreAccessError,
    StoreDecodeError,
    StoreError,
    StoreQueryError,
    StructuralInconsistencyError,
)

__all__ = [
    "ChatBridgeError",
    "ConfigurationError",
    "ErrorCode",
    "StoreAccessError",
    "StoreDecodeError",
    "StoreError",
    "StoreQueryError",
    "StructuralInconsistencyError",
    "missing_conversation_join",
    "store_db_not_found",
    "store_permission_denied",
]
