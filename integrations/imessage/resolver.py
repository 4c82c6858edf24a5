"""Join traversals over chat.db.

Resolves the relations between conversations, participants, messages and
attachments. A resolver borrows one connection for the duration of a single
public operation; the caller holds the store lock while it is in use.

Decode failures of related rows are dropped here and never interrupt the
surrounding call. The directly requested row of a point lookup is the
exception: its decode failure propagates to the caller.
"""

import logging
import sqlite3
from typing import Any

from chatbridge.errors import StoreDecodeError, StoreQueryError, missing_conversation_join
from chatbridge.utils.sqlite_retry import sqlite_retry
from contracts.imessage import Attachment, Conversation, Message, Participant, ResolveOptions

from .dimensions import probe_image_dimensions
from .parser import (
    RowView,
    attachment_file_path,
    row_to_attachment,
    row_to_conversation,
    row_to_message,
    row_to_participant,
)
from .queries import get_query

logger = logging.getLogger(__name__)


@sqlite_retry()
def _fetchall(conn: sqlite3.Connection, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
    return conn.execute(sql, params).fetchall()


def run_query(
    conn: sqlite3.Connection,
    sql: str,
    params: tuple[Any, ...] = (),
) -> list[sqlite3.Row]:
    """Execute a statement, mapping sqlite failures onto StoreQueryError."""
    try:
        return _fetchall(conn, sql, params)
    except sqlite3.Error as e:
        raise StoreQueryError(f"Query failed: {e}", query=sql, cause=e) from e


class RelationshipResolver:
    """Eager-loads related entities for one call.

    Example:
        with reader._connection_context() as conn:
            resolver = RelationshipResolver(conn)
            participants = resolver.participants_for_conversation(chat_rowid)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        last_message_pick: str = "earliest",
        probe_dimensions: bool = True,
    ) -> None:
        """Initialize the resolver.

        Args:
            conn: Borrowed store connection.
            last_message_pick: "earliest" or "latest"; see QueryConfig.
            probe_dimensions: Decode attachment files for width/height.
        """
        self.conn = conn
        self.last_message_pick = last_message_pick
        self.probe_dimensions = probe_dimensions

    def _rows(self, name: str, params: tuple[Any, ...], **query_flags: Any) -> list[sqlite3.Row]:
        return run_query(self.conn, get_query(name, **query_flags), params)

    def _first(self, name: str, params: tuple[Any, ...], **query_flags: Any) -> sqlite3.Row | None:
        rows = self._rows(name, params, **query_flags)
        return rows[0] if rows else None

    # Participants

    def participant(self, handle_rowid: int) -> Participant | None:
        """Resolve a sender handle; absence is valid (system or outgoing messages)."""
        row = self._first("participant_by_rowid", (handle_rowid,))
        if row is None:
            return None
        try:
            return row_to_participant(row)
        except StoreDecodeError as e:
            logger.debug("Dropping undecodable handle %s: %s", handle_rowid, e)
            return None

    def participants_for_conversation(self, conversation_rowid: int) -> list[Participant]:
        """Resolve every participant joined to a conversation, in join order."""
        participants: list[Participant] = []
        seen: set[int] = set()
        for join_row in self._rows("participant_ids_for_conversation", (conversation_rowid,)):
            handle_rowid = join_row["handle_id"]
            if handle_rowid is None or handle_rowid in seen:
                continue
            seen.add(handle_rowid)
            participant = self.participant(handle_rowid)
            if participant is not None:
                participants.append(participant)
        return participants

    # Attachments

    def attachment_from_row(self, row: sqlite3.Row) -> Attachment:
        """Materialize an attachment row, probing its file for dimensions."""
        dimensions = None
        if self.probe_dimensions:
            dimensions = probe_image_dimensions(attachment_file_path(row))
        return row_to_attachment(row, dimensions)

    def attachment_by_guid(self, guid: str) -> Attachment | None:
        row = self._first("attachment_by_guid", (guid,))
        if row is None:
            return None
        return self.attachment_from_row(row)

    def attachments_for_message(self, message_rowid: int) -> list[Attachment]:
        """Resolve a message's attachments, dropping any that fail to decode."""
        attachments: list[Attachment] = []
        for join_row in self._rows("attachment_guids_for_message", (message_rowid,)):
            guid = join_row["guid"]
            try:
                attachment = self.attachment_by_guid(guid)
            except StoreDecodeError as e:
                logger.debug("Dropping undecodable attachment %s: %s", guid, e)
                continue
            if attachment is not None:
                attachments.append(attachment)
        return attachments

    # Messages

    def conversation_guid_for_message(self, message_rowid: int, message_guid: str) -> str:
        """GUID of the conversation owning a message.

        Raises:
            StructuralInconsistencyError: If no owning conversation exists.
        """
        row = self._first("conversation_guid_for_message", (message_rowid,))
        if row is None or row["guid"] is None:
            raise missing_conversation_join(message_guid, message_rowid)
        return row["guid"]

    def message_from_row(
        self,
        row: sqlite3.Row,
        options: ResolveOptions,
        conversation_guid: str | None = None,
    ) -> Message:
        """Materialize a message row with the relations ``options`` asks for.

        Args:
            row: The message row.
            options: Relations to resolve.
            conversation_guid: Owning conversation when already known; looked
                up through the join otherwise.
        """
        view = RowView(row, "message")
        rowid = view.required("ROWID", int)
        guid = view.required("guid", str)
        handle_id = view.required("handle_id", int)

        if conversation_guid is None:
            conversation_guid = self.conversation_guid_for_message(rowid, guid)

        handle = self.participant(handle_id) if options.sender and handle_id else None
        attachments = self.attachments_for_message(rowid) if options.attachments else []

        return row_to_message(
            row,
            conversation_guid=conversation_guid,
            handle=handle,
            attachments=attachments,
        )

    def message_by_guid(self, guid: str, options: ResolveOptions) -> Message | None:
        row = self._first("message_by_guid", (guid,))
        if row is None:
            return None
        return self.message_from_row(row, options)

    def last_message(self, conversation_rowid: int, options: ResolveOptions) -> Message | None:
        """Resolve the message a conversation's ``last_message`` points at.

        Which end of the conversation that is depends on ``last_message_pick``.
        """
        row = self._first(
            "last_message_for_conversation",
            (conversation_rowid,),
            last_message_pick=self.last_message_pick,
        )
        if row is None:
            return None
        try:
            return self.message_by_guid(row["guid"], options)
        except StoreDecodeError as e:
            logger.debug("Dropping undecodable last message of chat %s: %s", conversation_rowid, e)
            return None

    # Conversations

    def conversation_from_row(self, row: sqlite3.Row, options: ResolveOptions) -> Conversation:
        """Materialize a chat row with the relations ``options`` asks for."""
        rowid = RowView(row, "chat").required("ROWID", int)
        participants = self.participants_for_conversation(rowid) if options.participants else None
        last_message = self.last_message(rowid, options) if options.last_message else None
        return row_to_conversation(row, participants=participants, last_message=last_message)
