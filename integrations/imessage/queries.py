"""SQL queries for iMessage chat.db access.

Note: filter and ordering parameters (with_before_filter, last_message_pick)
control query construction only. User input is NEVER interpolated into
query strings - all user values are passed as parameterized query arguments.
"""

from contracts.imessage import EntityKind

QUERIES = {
    "conversation_by_guid": """
        SELECT * FROM chat WHERE guid = ?
    """,
    "conversations": """
        SELECT * FROM chat LIMIT ?
    """,
    "conversation_rowid_by_guid": """
        SELECT ROWID FROM chat WHERE guid = ?
    """,
    "conversation_services": """
        SELECT service_name FROM chat
    """,
    "participant_ids_for_conversation": """
        SELECT handle_id
        FROM chat_handle_join
        WHERE chat_id = ?
    """,
    "participant_by_rowid": """
        SELECT * FROM handle WHERE ROWID = ?
    """,
    "message_by_guid": """
        SELECT * FROM message WHERE guid = ?
    """,
    "conversation_guid_for_message": """
        SELECT chat.guid
        FROM chat_message_join
        JOIN chat ON chat.ROWID = chat_message_join.chat_id
        WHERE chat_message_join.message_id = ?
        LIMIT 1
    """,
    "last_message_for_conversation": """
        SELECT message.guid
        FROM chat_message_join
        JOIN message ON message.ROWID = chat_message_join.message_id
        WHERE chat_message_join.chat_id = ?
        ORDER BY chat_message_join.message_date {order}
        LIMIT 1
    """,
    "attachment_guids_for_message": """
        SELECT attachment.guid
        FROM message_attachment_join
        JOIN attachment ON attachment.ROWID = message_attachment_join.attachment_id
        WHERE message_attachment_join.message_id = ?
    """,
    "attachment_by_guid": """
        SELECT * FROM attachment WHERE guid = ?
    """,
    "conversation_messages": """
        SELECT message.*
        FROM chat_message_join
        JOIN message ON message.ROWID = chat_message_join.message_id
        WHERE chat_message_join.chat_id = ?
        AND chat_message_join.message_date > ?
        {before_filter}
    """,
    "message_guids_since": """
        SELECT guid FROM message WHERE date > ?
    """,
}

LAST_MESSAGE_ORDER = {
    "earliest": "ASC",
    "latest": "DESC",
}


def get_query(
    name: str,
    *,
    with_before_filter: bool = False,
    last_message_pick: str = "earliest",
) -> str:
    """Get a SQL query by name.

    Args:
        name: Query name (see QUERIES)
        with_before_filter: If True, include AND message_date < ? (conversation_messages)
        last_message_pick: "earliest" or "latest" (last_message_for_conversation)

    Returns:
        SQL query string with filters applied

    Raises:
        KeyError: If query name or last_message_pick is unknown
    """
    query = QUERIES[name]
    before_filter = "AND chat_message_join.message_date < ?" if with_before_filter else ""
    return query.format(
        before_filter=before_filter,
        order=LAST_MESSAGE_ORDER[last_message_pick],
    )


def count_query(kind: EntityKind) -> str:
    """Row count for one entity table; the table name comes from the enum only."""
    return f"SELECT COUNT(*) FROM {EntityKind(kind).value}"
