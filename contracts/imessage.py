"""iMessage store interfaces.

Value objects materialized from chat.db rows, the per-call resolution
options, and the reader protocol the query layer implements.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


@dataclass(frozen=True)
class ResolveOptions:
    """Which relations to eager-load for one call.

    Passed down unchanged through every nested resolution so the depth of a
    call is fixed by its caller.

    Attributes:
        participants: Resolve a conversation's participants.
        last_message: Resolve a conversation's last message.
        sender: Resolve a message's sender participant.
        attachments: Resolve a message's attachments.
    """

    participants: bool = False
    last_message: bool = False
    sender: bool = False
    attachments: bool = False


class EntityKind(str, Enum):
    """Countable store tables."""

    CONVERSATION = "chat"
    MESSAGE = "message"
    PARTICIPANT = "handle"
    ATTACHMENT = "attachment"


@dataclass
class Participant:
    """A handle taking part in conversations.

    Attributes:
        original_rowid: Internal handle ROWID.
        address: Phone number or email.
        country: Country code of the handle.
        uncanonicalized_id: Raw identifier as entered, if recorded.
        service: Transport the handle uses (e.g. "iMessage", "SMS").
    """

    original_rowid: int
    address: str
    country: str
    service: str
    uncanonicalized_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalROWID": self.original_rowid,
            "address": self.address,
            "country": self.country,
            "uncanonicalizedId": self.uncanonicalized_id,
            "service": self.service,
        }


@dataclass
class Attachment:
    """Attachment metadata.

    Attributes:
        original_rowid: Internal attachment ROWID.
        guid: Stable external identifier.
        uti: Uniform Type Identifier (e.g., "public.jpeg").
        mime_type: MIME type (e.g., "image/jpeg").
        transfer_name: File name as transferred.
        total_bytes: Size in bytes.
        transfer_state: Transfer state code.
        is_outgoing: Whether the attachment was sent by the user.
        hide_attachment: Whether the attachment is hidden.
        is_sticker: Whether the attachment is a sticker.
        original_guid: GUID of the attachment this one replaced.
        file_path: Filesystem path of the attachment file.
        width: Decoded pixel width, when the file could be decoded.
        height: Decoded pixel height, when the file could be decoded.
        has_live_photo: Always False; the store has no reliable flag.
        metadata: Free-form metadata string.
    """

    original_rowid: int
    guid: str
    transfer_name: str
    total_bytes: int
    transfer_state: int
    is_outgoing: bool
    hide_attachment: bool
    is_sticker: bool
    original_guid: str
    uti: str | None = None
    mime_type: str | None = None
    file_path: str | None = None
    width: int | None = None
    height: int | None = None
    has_live_photo: bool = False
    metadata: str = "{}"

    def __post_init__(self) -> None:
        """Validate field constraints."""
        if self.total_bytes < 0:
            msg = f"total_bytes must be >= 0, got {self.total_bytes}"
            raise ValueError(msg)
        if self.width is not None and self.width < 0:
            msg = f"width must be >= 0, got {self.width}"
            raise ValueError(msg)
        if self.height is not None and self.height < 0:
            msg = f"height must be >= 0, got {self.height}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalROWID": self.original_rowid,
            "guid": self.guid,
            "uti": self.uti,
            "mimeType": self.mime_type,
            "transferName": self.transfer_name,
            "totalBytes": self.total_bytes,
            "transferState": self.transfer_state,
            "isOutgoing": self.is_outgoing,
            "hideAttachment": self.hide_attachment,
            "isSticker": self.is_sticker,
            "originalGuid": self.original_guid,
            "hasLivePhoto": self.has_live_photo,
            "width": self.width,
            "height": self.height,
            "metadata": self.metadata,
        }


@dataclass
class Message:
    """A message row with its resolved relations.

    All ``date_*`` fields are Unix milliseconds.

    Attributes:
        original_rowid: Internal message ROWID.
        guid: Stable external identifier.
        conversation_guid: GUID of the owning conversation.
        handle_id: Raw sender handle ROWID (0 for messages without one).
        handle: Resolved sender, when requested and present.
        attachments: Resolved attachments; empty when not requested.
    """

    original_rowid: int
    guid: str
    conversation_guid: str
    handle_id: int
    error: int
    date_created: int
    date_read: int
    date_delivered: int
    date_played: int
    is_from_me: bool
    is_delayed: bool
    is_auto_reply: bool
    is_system_message: bool
    is_service_message: bool
    is_forward: bool
    is_corrupt: bool
    is_spam: bool
    is_audio_message: bool
    has_dd_results: bool
    was_delivered_quietly: bool
    did_notify_recipient: bool
    group_action_type: int
    item_type: int
    share_status: int
    share_direction: int
    text: str | None = None
    subject: str | None = None
    handle: Participant | None = None
    attachments: list[Attachment] = field(default_factory=list)
    other_handle: int | None = None
    group_title: str | None = None
    associated_message_guid: str | None = None
    associated_message_type: int | None = None
    expressive_send_style_id: str | None = None
    thread_originator_guid: str | None = None
    thread_originator_part: str | None = None
    country: str | None = None
    cache_roomnames: str | None = None
    reply_to_guid: str | None = None

    def __post_init__(self) -> None:
        """Validate field constraints."""
        if self.original_rowid < 0:
            msg = f"original_rowid must be >= 0, got {self.original_rowid}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalROWID": self.original_rowid,
            "guid": self.guid,
            "text": self.text,
            "handle": self.handle.to_dict() if self.handle else None,
            "handleId": self.handle_id,
            "subject": self.subject,
            "error": self.error,
            "attachments": [a.to_dict() for a in self.attachments],
            "groupActionType": self.group_action_type,
            "itemType": self.item_type,
            "otherHandle": self.other_handle,
            "dateCreated": self.date_created,
            "dateRead": self.date_read,
            "dateDelivered": self.date_delivered,
            "datePlayed": self.date_played,
            "isFromMe": self.is_from_me,
            "hasDdResults": self.has_dd_results,
            "groupTitle": self.group_title,
            "associatedMessageGuid": self.associated_message_guid,
            "associatedMessageType": self.associated_message_type,
            "expressiveSendStyleId": self.expressive_send_style_id,
            "threadOriginatorGuid": self.thread_originator_guid,
            "threadOriginatorPart": self.thread_originator_part,
            "country": self.country,
            "isDelayed": self.is_delayed,
            "isAutoReply": self.is_auto_reply,
            "isSystemMessage": self.is_system_message,
            "isServiceMessage": self.is_service_message,
            "isForward": self.is_forward,
            "isCorrupt": self.is_corrupt,
            "cacheRoomnames": self.cache_roomnames,
            "isSpam": self.is_spam,
            "isAudioMessage": self.is_audio_message,
            "replyToGuid": self.reply_to_guid,
            "shareStatus": self.share_status,
            "shareDirection": self.share_direction,
            "wasDeliveredQuietly": self.was_delivered_quietly,
            "didNotifyRecipient": self.did_notify_recipient,
        }


@dataclass
class Conversation:
    """A chat thread.

    ``participants`` and ``last_message`` are None when the relation was not
    requested. A requested relation that resolved to nothing is ``[]`` for
    participants and None for the last message.

    Attributes:
        original_rowid: Internal chat ROWID, used for joins only.
        guid: Stable external identifier.
        style: Chat style code (43 = group, 45 = one-to-one).
        chat_identifier: Human-facing identifier (handle or group id).
        is_archived: Whether the chat is archived.
        is_filtered: Whether the chat is filtered (unknown senders).
        group_id: Group identifier.
        display_name: Display name, if the chat was named.
    """

    original_rowid: int
    guid: str
    style: int
    chat_identifier: str
    is_archived: bool
    is_filtered: bool
    group_id: str
    display_name: str | None = None
    last_addressed_handle: str | None = None
    service_name: str | None = None
    participants: list[Participant] | None = None
    last_message: Message | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalROWID": self.original_rowid,
            "guid": self.guid,
            "participants": (
                [p.to_dict() for p in self.participants]
                if self.participants is not None
                else None
            ),
            "lastMessage": self.last_message.to_dict() if self.last_message else None,
            "style": self.style,
            "chatIdentifier": self.chat_identifier,
            "isArchived": self.is_archived,
            "isFiltered": self.is_filtered,
            "displayName": self.display_name,
            "groupId": self.group_id,
            "lastAddressedHandle": self.last_addressed_handle,
        }


@dataclass
class ServiceBreakdown:
    """Conversation counts by service.

    Attributes:
        total: Number of conversations with a service name.
        breakdown: Count per service name.
    """

    total: int
    breakdown: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "breakdown": dict(self.breakdown)}


class ChatStoreReader(Protocol):
    """Read-only query surface over the iMessage store."""

    def get_conversation_by_guid(
        self,
        guid: str,
        include_last_message: bool = False,
        include_participants: bool = False,
    ) -> Conversation | None:
        """Get a single conversation by GUID."""
        ...

    def list_conversations(
        self,
        limit: int = 100,
        offset: int = 0,
        sort: str | None = None,
        include_last_message: bool = False,
        include_participants: bool = False,
    ) -> list[Conversation]:
        """Get a page of conversations in store order."""
        ...

    def get_conversation_service_breakdown(self) -> ServiceBreakdown:
        """Count conversations per service."""
        ...

    def get_entity_count(self, kind: EntityKind) -> int:
        """Count rows of one entity kind."""
        ...

    def get_message_by_guid(
        self,
        guid: str,
        include_sender: bool = False,
        include_attachments: bool = False,
    ) -> Message | None:
        """Get a single message by GUID."""
        ...

    def get_attachment_by_guid(self, guid: str) -> Attachment | None:
        """Get a single attachment by GUID."""
        ...

    def list_conversation_messages(
        self,
        conversation_guid: str,
        include_attachments: bool = False,
        include_sender: bool = False,
        offset: int = 0,
        limit: int = 100,
        sort: str = "DESC",
        after: int = 0,
        before: int | None = None,
    ) -> list[Message] | None:
        """Get a page of a conversation's messages within a time window."""
        ...

    def get_last_message_for_conversation(self, conversation_rowid: int) -> Message | None:
        """Get the message a conversation's ``last_message`` resolves to."""
        ...

    def poll_new_messages(self) -> Iterator[Message]:
        """Get messages created since the previous poll."""
        ...
