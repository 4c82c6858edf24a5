"""chatbridge - read-only structured access to the local iMessage store.

Provides configuration, error types and shared utilities for the
``integrations.imessage`` query layer.
"""

__version__ = "0.3.0"
