"""iMessage chat.db integration.

Provides read-only access to the macOS iMessage database as conversations,
participants, messages and attachments.

Example:
    from integrations.imessage import ChatDBReader

    with ChatDBReader() as reader:
        if reader.check_access():
            for conv in reader.list_conversations(limit=10, include_participants=True):
                messages = reader.list_conversation_messages(conv.guid, limit=20)

        # Only what arrived since the reader was created
        new_messages = list(reader.poll_new_messages())
"""

from .reader import CHAT_DB_PATH, ChatDBReader
from .resolver import RelationshipResolver

__all__ = ["ChatDBReader", "CHAT_DB_PATH", "RelationshipResolver"]
