"""Row materialization for iMessage chat.db.

Builds Conversation, Participant, Message and Attachment values from raw
rows plus relations the caller already resolved. Nothing here touches the
database.

Column policy:
- required columns raise StoreDecodeError when missing, NULL or mistyped
- optional columns map missing, NULL or mistyped values to None
- boolean columns are integers; only 1 is True
- every timestamp leaves as Unix milliseconds
"""

import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from chatbridge.errors import StoreDecodeError
from chatbridge.utils.datetime_utils import store_to_unix_ms
from contracts.imessage import Attachment, Conversation, Message, Participant

T = TypeVar("T")

# Stored encoding of a true boolean column
SQLITE_TRUE = 1

RowLike = sqlite3.Row | Mapping[str, Any]


class RowView:
    """Typed, policy-enforcing access to one store row.

    Accepts sqlite3.Row or any mapping with ``keys()``.
    """

    def __init__(self, row: RowLike, table: str) -> None:
        self._row = row
        self._columns = set(row.keys())
        self.table = table

    def _decode_error(self, column: str, problem: str) -> StoreDecodeError:
        return StoreDecodeError(
            f"{self.table}.{column} {problem}",
            table=self.table,
            column=column,
        )

    def required(self, column: str, kind: type[T]) -> T:
        if column not in self._columns:
            raise self._decode_error(column, "is missing")
        value = self._row[column]
        if value is None:
            raise self._decode_error(column, "is NULL")
        if not _is_kind(value, kind):
            found = type(value).__name__
            raise self._decode_error(column, f"is {found}, expected {kind.__name__}")
        return value

    def count(self, column: str) -> int:
        """Required integer column that can never be negative (ids, sizes)."""
        value = self.required(column, int)
        if value < 0:
            raise self._decode_error(column, f"is negative ({value})")
        return value

    def optional(self, column: str, kind: type[T]) -> T | None:
        if column not in self._columns:
            return None
        value = self._row[column]
        if value is None or not _is_kind(value, kind):
            return None
        return value

    def flag(self, column: str) -> bool:
        return self.required(column, int) == SQLITE_TRUE

    def timestamp(self, column: str) -> int:
        return store_to_unix_ms(self.required(column, int))


def _is_kind(value: Any, kind: type) -> bool:
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, kind)


def row_to_participant(row: RowLike) -> Participant:
    """Build a Participant from a ``handle`` row."""
    view = RowView(row, "handle")
    return Participant(
        original_rowid=view.count("ROWID"),
        address=view.required("id", str),
        country=view.required("country", str),
        service=view.required("service", str),
        uncanonicalized_id=view.optional("uncanonicalized_id", str),
    )


def row_to_attachment(
    row: RowLike,
    dimensions: tuple[int, int] | None = None,
) -> Attachment:
    """Build an Attachment from an ``attachment`` row.

    Args:
        row: The attachment row.
        dimensions: Decoded (width, height), or None when unknown.
    """
    view = RowView(row, "attachment")
    width, height = dimensions if dimensions else (None, None)
    return Attachment(
        original_rowid=view.count("ROWID"),
        guid=view.required("guid", str),
        uti=view.optional("uti", str),
        mime_type=view.optional("mime_type", str),
        transfer_name=view.required("transfer_name", str),
        total_bytes=view.count("total_bytes"),
        transfer_state=view.required("transfer_state", int),
        is_outgoing=view.flag("is_outgoing"),
        hide_attachment=view.flag("hide_attachment"),
        is_sticker=view.flag("is_sticker"),
        original_guid=view.required("original_guid", str),
        file_path=attachment_file_path(row),
        width=width,
        height=height,
    )


def attachment_file_path(row: RowLike) -> str | None:
    """Filesystem path of an attachment row, with ``~`` expanded."""
    filename = RowView(row, "attachment").optional("filename", str)
    if not filename:
        return None
    if filename.startswith("~"):
        return str(Path(filename).expanduser())
    return filename


def row_to_message(
    row: RowLike,
    *,
    conversation_guid: str,
    handle: Participant | None = None,
    attachments: list[Attachment] | None = None,
) -> Message:
    """Build a Message from a ``message`` row.

    Args:
        row: The message row.
        conversation_guid: GUID of the owning conversation.
        handle: Resolved sender, if requested.
        attachments: Resolved attachments, if requested.
    """
    view = RowView(row, "message")
    return Message(
        original_rowid=view.count("ROWID"),
        guid=view.required("guid", str),
        conversation_guid=conversation_guid,
        text=view.optional("text", str),
        handle=handle,
        handle_id=view.required("handle_id", int),
        subject=view.optional("subject", str),
        error=view.required("error", int),
        attachments=list(attachments) if attachments else [],
        group_action_type=view.required("group_action_type", int),
        item_type=view.required("item_type", int),
        other_handle=view.optional("other_handle", int),
        date_created=view.timestamp("date"),
        date_read=view.timestamp("date_read"),
        date_delivered=view.timestamp("date_delivered"),
        date_played=view.timestamp("date_played"),
        is_from_me=view.flag("is_from_me"),
        has_dd_results=view.flag("has_dd_results"),
        group_title=view.optional("group_title", str),
        associated_message_guid=view.optional("associated_message_guid", str),
        associated_message_type=view.optional("associated_message_type", int),
        expressive_send_style_id=view.optional("expressive_send_style_id", str),
        thread_originator_guid=view.optional("thread_originator_guid", str),
        thread_originator_part=view.optional("thread_originator_part", str),
        country=view.optional("country", str),
        is_delayed=view.flag("is_delayed"),
        is_auto_reply=view.flag("is_auto_reply"),
        is_system_message=view.flag("is_system_message"),
        is_service_message=view.flag("is_service_message"),
        is_forward=view.flag("is_forward"),
        is_corrupt=view.flag("is_corrupt"),
        cache_roomnames=view.optional("cache_roomnames", str),
        is_spam=view.flag("is_spam"),
        is_audio_message=view.flag("is_audio_message"),
        reply_to_guid=view.optional("reply_to_guid", str),
        share_status=view.required("share_status", int),
        share_direction=view.required("share_direction", int),
        was_delivered_quietly=view.flag("was_delivered_quietly"),
        did_notify_recipient=view.flag("did_notify_recipient"),
    )


def row_to_conversation(
    row: RowLike,
    participants: list[Participant] | None = None,
    last_message: Message | None = None,
) -> Conversation:
    """Build a Conversation from a ``chat`` row.

    Args:
        row: The chat row.
        participants: Resolved participants, or None when not requested.
        last_message: Resolved last message, or None.
    """
    view = RowView(row, "chat")
    return Conversation(
        original_rowid=view.count("ROWID"),
        guid=view.required("guid", str),
        style=view.required("style", int),
        chat_identifier=view.required("chat_identifier", str),
        is_archived=view.flag("is_archived"),
        is_filtered=view.flag("is_filtered"),
        display_name=view.optional("display_name", str),
        group_id=view.required("group_id", str),
        last_addressed_handle=view.optional("last_addressed_handle", str),
        service_name=view.optional("service_name", str),
        participants=participants,
        last_message=last_message,
    )
