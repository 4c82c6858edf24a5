"""Shared test helpers: a chat.db builder using the real table and column names."""

from __future__ import annotations

import itertools
import sqlite3
from pathlib import Path
from typing import Any

# Apple epoch nanoseconds for 2024-01-01 00:00:00 UTC
STORE_2024 = 725_760_000 * 1_000_000_000

SCHEMA = """
CREATE TABLE chat (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE,
    style INTEGER,
    state INTEGER,
    account_id TEXT,
    chat_identifier TEXT,
    service_name TEXT,
    room_name TEXT,
    is_archived INTEGER DEFAULT 0,
    last_addressed_handle TEXT,
    display_name TEXT,
    group_id TEXT,
    is_filtered INTEGER DEFAULT 0
);
CREATE TABLE handle (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT UNIQUE,
    id TEXT,
    country TEXT,
    service TEXT,
    uncanonicalized_id TEXT,
    person_centric_id TEXT
);
CREATE TABLE message (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE,
    text TEXT,
    handle_id INTEGER DEFAULT 0,
    subject TEXT,
    country TEXT,
    attributedBody BLOB,
    service TEXT,
    error INTEGER DEFAULT 0,
    date INTEGER,
    date_read INTEGER,
    date_delivered INTEGER,
    date_played INTEGER,
    is_delivered INTEGER DEFAULT 0,
    is_from_me INTEGER DEFAULT 0,
    is_delayed INTEGER DEFAULT 0,
    is_auto_reply INTEGER DEFAULT 0,
    is_system_message INTEGER DEFAULT 0,
    is_service_message INTEGER DEFAULT 0,
    is_forward INTEGER DEFAULT 0,
    is_corrupt INTEGER DEFAULT 0,
    is_spam INTEGER DEFAULT 0,
    is_audio_message INTEGER DEFAULT 0,
    has_dd_results INTEGER DEFAULT 0,
    cache_roomnames TEXT,
    group_title TEXT,
    group_action_type INTEGER DEFAULT 0,
    item_type INTEGER DEFAULT 0,
    other_handle INTEGER DEFAULT 0,
    share_status INTEGER DEFAULT 0,
    share_direction INTEGER DEFAULT 0,
    expressive_send_style_id TEXT,
    associated_message_guid TEXT,
    associated_message_type INTEGER DEFAULT 0,
    reply_to_guid TEXT,
    thread_originator_guid TEXT,
    thread_originator_part TEXT,
    was_delivered_quietly INTEGER DEFAULT 0,
    did_notify_recipient INTEGER DEFAULT 0
);
CREATE TABLE attachment (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE,
    created_date INTEGER DEFAULT 0,
    filename TEXT,
    uti TEXT,
    mime_type TEXT,
    transfer_state INTEGER DEFAULT 0,
    is_outgoing INTEGER DEFAULT 0,
    transfer_name TEXT,
    total_bytes INTEGER DEFAULT 0,
    is_sticker INTEGER DEFAULT 0,
    hide_attachment INTEGER DEFAULT 0,
    original_guid TEXT
);
CREATE TABLE chat_handle_join (chat_id INTEGER, handle_id INTEGER);
CREATE TABLE chat_message_join (
    chat_id INTEGER,
    message_id INTEGER,
    message_date INTEGER DEFAULT 0
);
CREATE TABLE message_attachment_join (message_id INTEGER, attachment_id INTEGER);
"""

MESSAGE_DEFAULTS: dict[str, Any] = {
    "text": "hello",
    "handle_id": 0,
    "error": 0,
    "date": STORE_2024,
    "date_read": 0,
    "date_delivered": 0,
    "date_played": 0,
    "is_from_me": 0,
    "is_delayed": 0,
    "is_auto_reply": 0,
    "is_system_message": 0,
    "is_service_message": 0,
    "is_forward": 0,
    "is_corrupt": 0,
    "is_spam": 0,
    "is_audio_message": 0,
    "has_dd_results": 0,
    "group_action_type": 0,
    "item_type": 0,
    "other_handle": 0,
    "share_status": 0,
    "share_direction": 0,
    "associated_message_type": 0,
    "was_delivered_quietly": 0,
    "did_notify_recipient": 0,
}


class ChatDBBuilder:
    """Writes rows into a temporary chat.db, committing after every insert."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.conn = sqlite3.connect(path)
        self.conn.executescript(SCHEMA)
        self._seq = itertools.count(1)

    def insert(self, table: str, **fields: Any) -> int:
        columns = ", ".join(fields)
        placeholders = ", ".join("?" for _ in fields)
        cursor = self.conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(fields.values()),
        )
        self.conn.commit()
        return cursor.lastrowid

    def add_chat(self, **fields: Any) -> int:
        n = next(self._seq)
        row = {
            "guid": f"iMessage;-;+1555000{n:04d}",
            "style": 45,
            "chat_identifier": f"+1555000{n:04d}",
            "service_name": "iMessage",
            "is_archived": 0,
            "is_filtered": 0,
            "group_id": f"group-{n}",
        }
        row.update(fields)
        return self.insert("chat", **row)

    def add_handle(self, **fields: Any) -> int:
        n = next(self._seq)
        row = {"id": f"+1555111{n:04d}", "country": "us", "service": "iMessage"}
        row.update(fields)
        return self.insert("handle", **row)

    def add_participant(self, chat_rowid: int, **fields: Any) -> int:
        handle_rowid = self.add_handle(**fields)
        self.insert("chat_handle_join", chat_id=chat_rowid, handle_id=handle_rowid)
        return handle_rowid

    def add_message(self, chat_rowid: int | None, **fields: Any) -> int:
        """Insert a message and, unless ``chat_rowid`` is None, its chat join row."""
        n = next(self._seq)
        row = {"guid": f"msg-{n}", **MESSAGE_DEFAULTS}
        row.update(fields)
        message_rowid = self.insert("message", **row)
        if chat_rowid is not None:
            self.insert(
                "chat_message_join",
                chat_id=chat_rowid,
                message_id=message_rowid,
                message_date=row["date"],
            )
        return message_rowid

    def add_attachment(self, message_rowid: int | None = None, **fields: Any) -> int:
        n = next(self._seq)
        guid = fields.pop("guid", f"att-{n}")
        row = {
            "guid": guid,
            "uti": "public.png",
            "mime_type": "image/png",
            "transfer_name": f"IMG_{n:04d}.png",
            "total_bytes": 1024,
            "transfer_state": 5,
            "is_outgoing": 0,
            "hide_attachment": 0,
            "is_sticker": 0,
            "original_guid": guid,
        }
        row.update(fields)
        attachment_rowid = self.insert("attachment", **row)
        if message_rowid is not None:
            self.insert(
                "message_attachment_join",
                message_id=message_rowid,
                attachment_id=attachment_rowid,
            )
        return attachment_rowid

    def close(self) -> None:
        self.conn.close()
