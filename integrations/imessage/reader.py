"""Read-only iMessage chat.db access.

Implements the ChatStoreReader protocol from contracts/imessage.py.
"""

import logging
import sqlite3
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Self

from chatbridge.config import DEFAULT_CHAT_DB_PATH, ChatBridgeConfig, get_config
from chatbridge.errors import (
    ErrorCode,
    StoreAccessError,
    StoreDecodeError,
    StoreQueryError,
    StructuralInconsistencyError,
    store_db_not_found,
    store_permission_denied,
)
from chatbridge.utils.datetime_utils import to_store_epoch
from chatbridge.utils.latency_tracker import track_latency, tracked
from chatbridge.utils.sqlite_retry import sqlite_retry
from contracts.imessage import (
    Attachment,
    Conversation,
    EntityKind,
    Message,
    ResolveOptions,
    ServiceBreakdown,
)

from .pagination import paginate, sort_newest_first
from .queries import count_query, get_query
from .resolver import RelationshipResolver, run_query

logger = logging.getLogger(__name__)

CHAT_DB_PATH = DEFAULT_CHAT_DB_PATH

# Relations resolved for every message produced by a poll
POLL_OPTIONS = ResolveOptions(sender=True, attachments=True)


@sqlite_retry()
def _open_readonly(db_path: Path, timeout: float) -> sqlite3.Connection:
    conn = sqlite3.connect(
        f"file:{db_path}?mode=ro",
        uri=True,
        timeout=timeout,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    return conn


class ChatDBReader:
    """Read-only access to iMessage chat.db.

    Implements ChatStoreReader protocol from contracts/imessage.py.

    Thread Safety:
        The reader owns a single connection. Every public operation holds the
        reader's lock for its whole duration, including the nested join
        lookups it issues, so concurrent callers queue and each call reads a
        consistent view. The polling cursor is guarded by the same lock.

    Example:
        with ChatDBReader() as reader:
            if reader.check_access():
                for conv in reader.list_conversations(limit=10):
                    messages = reader.list_conversation_messages(conv.guid, limit=50)
    """

    def __init__(
        self,
        db_path: Path | None = None,
        *,
        config: ChatBridgeConfig | None = None,
        last_read_time: int | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        """Initialize the reader.

        Args:
            db_path: Path to chat.db. Defaults to the configured store path.
            config: Configuration to use instead of the global one.
            last_read_time: Initial polling cursor in Unix nanoseconds.
                Defaults to now.
            clock: Wall-clock source in Unix nanoseconds.
        """
        cfg = config or get_config()
        self.db_path = db_path or cfg.store.db_path
        self._timeout = cfg.store.timeout_seconds
        self._query_config = cfg.query
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._clock = clock
        self._last_read_time = clock() if last_read_time is None else last_read_time

    @property
    def last_read_time(self) -> int:
        """Polling cursor in Unix nanoseconds."""
        with self._lock:
            return self._last_read_time

    def _get_connection(self) -> sqlite3.Connection:
        """Get the read-only database connection, opening it on first use.

        Returns:
            SQLite connection with Row factory

        Raises:
            StoreAccessError: If the file is missing or permission is denied.
            StoreQueryError: If connection fails for other sqlite reasons.
        """
        if self._connection is not None:
            return self._connection

        db_path_str = str(self.db_path)

        if not self.db_path.exists():
            raise store_db_not_found(db_path_str)

        try:
            self._connection = _open_readonly(self.db_path, self._timeout)
        except PermissionError as e:
            raise store_permission_denied(db_path_str) from e
        except (sqlite3.OperationalError, sqlite3.InterfaceError) as e:
            if "unable to open database" in str(e).lower():
                raise store_permission_denied(db_path_str) from e
            raise StoreQueryError(
                f"Failed to connect to database: {e}",
                db_path=db_path_str,
                cause=e,
            ) from e
        except OSError as e:
            raise StoreAccessError(
                f"Failed to connect to database (I/O error): {e}",
                db_path=db_path_str,
                cause=e,
            ) from e

        logger.debug("Opened chat store at %s", db_path_str)
        return self._connection

    @contextmanager
    def _connection_context(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock and yield the connection."""
        with self._lock:
            yield self._get_connection()

    def _resolver(self, conn: sqlite3.Connection) -> RelationshipResolver:
        return RelationshipResolver(
            conn,
            last_message_pick=self._query_config.last_message_pick,
            probe_dimensions=self._query_config.probe_attachment_dimensions,
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is None:
                return
            try:
                self._connection.close()
            except sqlite3.Error:
                logger.debug("Error closing database connection", exc_info=True)
            self._connection = None

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager and close connection."""
        self.close()

    def check_access(self) -> bool:
        """Check if we have permission to read chat.db.

        Returns:
            True if access is granted, False otherwise

        Note:
            For error details, use require_access() which raises
            StoreAccessError with specific information.
        """
        try:
            self.require_access()
        except StoreAccessError as e:
            logger.warning("Cannot read chat store: %s", e)
            return False
        return True

    def require_access(self) -> None:
        """Verify access to chat.db, raising an exception if access is denied.

        Raises:
            StoreAccessError: If database is not found, permission is denied
                or the file is not a readable store.
        """
        db_path_str = str(self.db_path)
        try:
            with self._connection_context() as conn:
                conn.execute("SELECT 1 FROM chat LIMIT 1").fetchone()
        except StoreQueryError as e:
            raise StoreAccessError(
                f"Database error: {e}",
                db_path=db_path_str,
                code=ErrorCode.STORE_QUERY_FAILED,
                cause=e,
            ) from e
        except sqlite3.Error as e:
            if "unable to open database" in str(e).lower():
                raise store_permission_denied(db_path_str) from e
            raise StoreAccessError(
                f"Database error: {e}",
                db_path=db_path_str,
                code=ErrorCode.STORE_QUERY_FAILED,
                cause=e,
            ) from e

    @tracked("conversation_lookup")
    def get_conversation_by_guid(
        self,
        guid: str,
        include_last_message: bool = False,
        include_participants: bool = False,
        *,
        include_sender: bool = True,
        include_attachments: bool = True,
    ) -> Conversation | None:
        """Get a single conversation by GUID.

        Args:
            guid: The conversation GUID (chat.guid)
            include_last_message: Resolve ``last_message``
            include_participants: Resolve ``participants``
            include_sender: Resolve the last message's sender
            include_attachments: Resolve the last message's attachments

        Returns:
            Conversation if found, None otherwise

        Raises:
            StoreDecodeError: If the conversation row itself cannot be decoded.
        """
        options = ResolveOptions(
            participants=include_participants,
            last_message=include_last_message,
            sender=include_sender,
            attachments=include_attachments,
        )
        with self._connection_context() as conn:
            rows = run_query(conn, get_query("conversation_by_guid"), (guid,))
            if not rows:
                return None
            return self._resolver(conn).conversation_from_row(rows[0], options)

    @tracked("conversations_list")
    def list_conversations(
        self,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
        include_last_message: bool = False,
        include_participants: bool = False,
        *,
        include_sender: bool = True,
        include_attachments: bool = True,
    ) -> list[Conversation]:
        """Get a page of conversations.

        Conversations come back in store iteration order; ``sort`` is
        accepted for interface compatibility and not applied. Rows that fail
        to decode are skipped.

        Args:
            limit: Page size (defaults to query.default_limit)
            offset: Number of conversations to skip
            sort: Requested ordering (not applied)
            include_last_message: Resolve each ``last_message``
            include_participants: Resolve each ``participants``
            include_sender: Resolve last messages' senders
            include_attachments: Resolve last messages' attachments
        """
        if limit is None:
            limit = self._query_config.default_limit
        limit, offset = max(limit, 0), max(offset, 0)
        if sort:
            logger.debug("Conversation listing keeps store order; ignoring sort=%r", sort)

        options = ResolveOptions(
            participants=include_participants,
            last_message=include_last_message,
            sender=include_sender,
            attachments=include_attachments,
        )
        conversations: list[Conversation] = []
        with self._connection_context() as conn:
            resolver = self._resolver(conn)
            for row in run_query(conn, get_query("conversations"), (limit + offset,)):
                try:
                    conversations.append(resolver.conversation_from_row(row, options))
                except StoreDecodeError as e:
                    logger.debug("Skipping undecodable conversation: %s", e)

        return paginate(conversations, offset, limit)

    @tracked("service_breakdown")
    def get_conversation_service_breakdown(
        self,
        include_unknown_services: bool = False,
    ) -> ServiceBreakdown:
        """Count conversations per service.

        ``total`` counts every conversation with a service name. The
        breakdown always lists the configured known services (iMessage and
        SMS by default), with zero counts where absent; other observed
        services are added only when ``include_unknown_services`` is set.
        """
        with self._connection_context() as conn:
            rows = run_query(conn, get_query("conversation_services"))

        counts = Counter(
            row["service_name"] for row in rows if isinstance(row["service_name"], str)
        )
        breakdown = {service: counts[service] for service in self._query_config.known_services}
        if include_unknown_services:
            for service, count in counts.items():
                breakdown.setdefault(service, count)
        return ServiceBreakdown(total=sum(counts.values()), breakdown=breakdown)

    @tracked("entity_count")
    def get_entity_count(self, kind: EntityKind) -> int:
        """Count rows of one entity kind."""
        with self._connection_context() as conn:
            rows = run_query(conn, count_query(kind))
        return rows[0][0]

    @tracked("message_lookup")
    def get_message_by_guid(
        self,
        guid: str,
        include_sender: bool = False,
        include_attachments: bool = False,
    ) -> Message | None:
        """Get a single message by GUID.

        Returns:
            Message if found, None otherwise

        Raises:
            StructuralInconsistencyError: If the message has no owning conversation.
            StoreDecodeError: If the message row itself cannot be decoded.
        """
        options = ResolveOptions(sender=include_sender, attachments=include_attachments)
        with self._connection_context() as conn:
            return self._resolver(conn).message_by_guid(guid, options)

    @tracked("attachment_lookup")
    def get_attachment_by_guid(self, guid: str) -> Attachment | None:
        """Get a single attachment by GUID.

        Width and height are filled in when the referenced file decodes as
        an image; otherwise they are None.
        """
        with self._connection_context() as conn:
            return self._resolver(conn).attachment_by_guid(guid)

    @tracked("conversation_messages")
    def list_conversation_messages(
        self,
        conversation_guid: str,
        include_attachments: bool = False,
        include_sender: bool = False,
        offset: int = 0,
        limit: int | None = None,
        sort: str = "DESC",
        after: int = 0,
        before: int | None = None,
    ) -> list[Message] | None:
        """Get a page of a conversation's messages within a time window.

        Results are always newest first; ``sort`` is accepted for interface
        compatibility and not applied.

        Args:
            conversation_guid: The conversation GUID
            include_attachments: Resolve each message's attachments
            include_sender: Resolve each message's sender
            offset: Number of messages to skip
            limit: Page size (defaults to query.default_limit)
            sort: Requested ordering (not applied)
            after: Exclusive lower bound, store nanoseconds
            before: Exclusive upper bound, store nanoseconds; None for no bound

        Returns:
            List of messages, or None if the conversation does not exist
        """
        if limit is None:
            limit = self._query_config.default_limit
        if sort.upper() != "DESC":
            logger.debug("Conversation messages are always newest first; ignoring sort=%r", sort)

        options = ResolveOptions(sender=include_sender, attachments=include_attachments)
        messages: list[Message] = []
        with self._connection_context() as conn:
            chat_rows = run_query(conn, get_query("conversation_rowid_by_guid"), (conversation_guid,))
            if not chat_rows:
                return None

            params: tuple[Any, ...] = (chat_rows[0][0], after)
            if before is not None:
                params += (before,)
            query = get_query("conversation_messages", with_before_filter=before is not None)

            resolver = self._resolver(conn)
            for row in run_query(conn, query, params):
                try:
                    messages.append(resolver.message_from_row(row, options, conversation_guid))
                except StoreDecodeError as e:
                    logger.debug("Skipping undecodable message in %s: %s", conversation_guid, e)

        return paginate(sort_newest_first(messages), offset, limit)

    @tracked("last_message")
    def get_last_message_for_conversation(
        self,
        conversation_rowid: int,
        include_sender: bool = True,
        include_attachments: bool = True,
    ) -> Message | None:
        """Get the message a conversation's ``last_message`` resolves to.

        With the default ``query.last_message_pick = "earliest"`` this is the
        conversation's earliest message.
        """
        options = ResolveOptions(sender=include_sender, attachments=include_attachments)
        with self._connection_context() as conn:
            return self._resolver(conn).last_message(conversation_rowid, options)

    def poll_new_messages(self) -> Iterator[Message]:
        """Get messages created since the previous poll.

        The cursor advances to the wall-clock time read just before the
        query ran, so rows written while the poll is in progress are picked
        up by the next poll.

        A message without an owning conversation is reported after the
        cursor has moved past it, so the next poll is not stuck on it. Only
        a failure of the query itself leaves the cursor where it was.

        Returns:
            Iterator over the new messages, each with sender and attachments

        Raises:
            StructuralInconsistencyError: If a new message has no owning
                conversation. Other messages of that poll are not returned.
        """
        messages: list[Message] = []
        structural_error: StructuralInconsistencyError | None = None
        with self._connection_context() as conn, track_latency("poll"):
            poll_started = self._clock()
            since = to_store_epoch(self._last_read_time)
            resolver = self._resolver(conn)
            for row in run_query(conn, get_query("message_guids_since"), (since,)):
                try:
                    message = resolver.message_by_guid(row["guid"], POLL_OPTIONS)
                except StoreDecodeError as e:
                    logger.debug("Skipping undecodable message %s: %s", row["guid"], e)
                    continue
                except StructuralInconsistencyError as e:
                    structural_error = structural_error or e
                    continue
                if message is not None:
                    messages.append(message)
            self._last_read_time = poll_started

        if structural_error is not None:
            logger.warning(
                "Poll hit a message with no conversation, dropping %d new messages: %s",
                len(messages),
                structural_error,
            )
            raise structural_error
        logger.debug("Polled %d new messages", len(messages))
        return iter(messages)
