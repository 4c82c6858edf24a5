"""Contract interfaces for chatbridge.

Implementations should code against these contracts, not concrete readers.
"""

from contracts.imessage import (
    Attachment,
    ChatStoreReader,
    Conversation,
    EntityKind,
    Message,
    Participant,
    ResolveOptions,
    ServiceBreakdown,
)

__all__ = [
    "Attachment",
    "ChatStoreReader",
    "Conversation",
    "EntityKind",
    "Message",
    "Participant",
    "ResolveOptions",
    "ServiceBreakdown",
]
