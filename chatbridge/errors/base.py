"""Base error class and error codes for chatbridge.

Every chatbridge exception derives from ChatBridgeError and carries a
machine-readable ErrorCode plus a ``details`` mapping built from the
keyword context it was raised with.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error codes, included in serialized payloads."""

    CFG_INVALID = "CFG_INVALID"
    CFG_MISSING = "CFG_MISSING"

    STORE_ACCESS_DENIED = "STORE_ACCESS_DENIED"
    STORE_DB_NOT_FOUND = "STORE_DB_NOT_FOUND"
    STORE_QUERY_FAILED = "STORE_QUERY_FAILED"
    STORE_DECODE_FAILED = "STORE_DECODE_FAILED"
    STORE_STRUCTURE_INVALID = "STORE_STRUCTURE_INVALID"

    UNKNOWN = "UNKNOWN"


class ChatBridgeError(Exception):
    """Base exception for all chatbridge errors.

    Keyword context passed to the constructor (``db_path=...``,
    ``table=...``) lands in ``details`` unless its value is None.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code.
        details: Structured context about the failure.
        cause: Underlying exception, also chained as ``__cause__``.
    """

    default_message: str = "chatbridge error"
    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = dict(details or {})
        self.details.update({key: value for key, value in context.items() if value is not None})
        self.cause = cause
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code.value})"

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, e.g. for logging or an API error body."""
        payload: dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ConfigurationError(ChatBridgeError):
    """Raised for configuration and settings issues.

    Usual context: ``config_key``, ``config_path``.
    """

    default_message = "Configuration error"
    default_code = ErrorCode.CFG_INVALID
