"""SQLite storage adapter.

Implements the core CorrelationStorePort using a simple SQLite database.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from adapters import correlation_sql as sql
from core.errors import AlreadyExists
from core.models import ChatThreadPair, ContactName, MessageIdPair

LOGGER = logging.getLogger(__name__)


class SQLiteCorrelationStore:
    """Thin SQLite wrapper that satisfies the CorrelationStorePort contract."""

    def __init__(self, db_path: str, timeout: float = 10.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        # Handlers run concurrently; one writer at a time keeps the uniqueness
        # checks and the inserts from interleaving across connections.
        self._write_lock = threading.Lock()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - chat_thread_pairs: WhatsApp chat <-> Telegram topic bindings
        - message_id_pairs: relayed message correlations for replies/revokes
        - contact_names: display-name cache filled by contact sync
        """

        with self._write_lock, self._connect() as conn:
            for statement in sql.SCHEMA:
                conn.execute(statement)

    def put_chat_thread_pair(
        self, peer_chat_address: str, hub_conversation_id: int, hub_thread_id: int
    ) -> None:
        """Insert a binding; raise AlreadyExists if either side is taken."""

        params = {
            "peer_chat_address": peer_chat_address,
            "hub_conversation_id": hub_conversation_id,
            "hub_thread_id": hub_thread_id,
        }
        try:
            with self._write_lock, self._connect() as conn:
                conn.execute(sql.INSERT_CHAT_THREAD_PAIR, params)
        except sqlite3.IntegrityError as exc:
            raise AlreadyExists(
                f"Binding for {peer_chat_address} or topic {hub_thread_id} already exists",
                user_message="A topic already exists in database for the given WhatsApp chat",
            ) from exc

    def get_peer_from_hub(self, hub_conversation_id: int, hub_thread_id: int) -> Optional[str]:
        """Return the WhatsApp chat bound to a topic, if any."""

        with self._connect() as conn:
            row = conn.execute(
                sql.SELECT_PEER_FROM_HUB,
                {"hub_conversation_id": hub_conversation_id, "hub_thread_id": hub_thread_id},
            ).fetchone()
        return row["peer_chat_address"] if row else None

    def get_hub_from_peer(self, peer_chat_address: str, hub_conversation_id: int) -> Optional[int]:
        """Return the topic id bound to a WhatsApp chat, if any."""

        with self._connect() as conn:
            row = conn.execute(
                sql.SELECT_HUB_FROM_PEER,
                {"peer_chat_address": peer_chat_address, "hub_conversation_id": hub_conversation_id},
            ).fetchone()
        return int(row["hub_thread_id"]) if row else None

    def delete_chat_thread_pair(self, hub_conversation_id: int, hub_thread_id: int) -> bool:
        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                sql.DELETE_CHAT_THREAD_PAIR,
                {"hub_conversation_id": hub_conversation_id, "hub_thread_id": hub_thread_id},
            )
            return cur.rowcount > 0

    def delete_all_chat_thread_pairs(self, hub_conversation_id: int) -> int:
        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                sql.DELETE_ALL_CHAT_THREAD_PAIRS,
                {"hub_conversation_id": hub_conversation_id},
            )
            return cur.rowcount

    def list_chat_thread_pairs(self, hub_conversation_id: int) -> list[ChatThreadPair]:
        with self._connect() as conn:
            rows = conn.execute(
                sql.SELECT_CHAT_THREAD_PAIRS,
                {"hub_conversation_id": hub_conversation_id},
            ).fetchall()
        return [sql.row_to_chat_thread_pair(row) for row in rows]

    def put_message_id_pair(self, pair: MessageIdPair) -> None:
        """Record a relayed message; raise AlreadyExists on either unique key."""

        try:
            with self._write_lock, self._connect() as conn:
                conn.execute(sql.INSERT_MESSAGE_ID_PAIR, sql.message_id_pair_params(pair))
        except sqlite3.IntegrityError as exc:
            raise AlreadyExists(
                f"Message pair for {pair.hub_conversation_id}/{pair.hub_message_id} "
                f"or stanza {pair.peer_stanza_id} already exists"
            ) from exc

    def get_peer_from_hub_message(
        self, hub_conversation_id: int, hub_message_id: int, hub_thread_id: int
    ) -> Optional[MessageIdPair]:
        with self._connect() as conn:
            row = conn.execute(
                sql.SELECT_PEER_FROM_HUB_MESSAGE,
                {
                    "hub_conversation_id": hub_conversation_id,
                    "hub_message_id": hub_message_id,
                    "hub_thread_id": hub_thread_id,
                },
            ).fetchone()
        return sql.row_to_message_id_pair(row) if row else None

    def get_hub_from_peer_message(
        self, peer_chat_address: str, peer_stanza_id: str
    ) -> Optional[MessageIdPair]:
        with self._connect() as conn:
            row = conn.execute(
                sql.SELECT_HUB_FROM_PEER_MESSAGE,
                {"peer_chat_address": peer_chat_address, "peer_stanza_id": peer_stanza_id},
            ).fetchone()
        return sql.row_to_message_id_pair(row) if row else None

    def delete_message_id_pair(self, hub_conversation_id: int, hub_message_id: int) -> int:
        """Delete the pair of one hub message; deleting nothing is not an error."""

        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                sql.DELETE_MESSAGE_ID_PAIR,
                {"hub_conversation_id": hub_conversation_id, "hub_message_id": hub_message_id},
            )
            return cur.rowcount

    def delete_all_message_id_pairs(self) -> int:
        with self._write_lock, self._connect() as conn:
            cur = conn.execute(sql.DELETE_ALL_MESSAGE_ID_PAIRS)
            removed = cur.rowcount
        LOGGER.info("Cleared %s message id pairs", removed)
        return removed

    def upsert_contact_names(self, contacts: Iterable[ContactName]) -> int:
        params = [sql.contact_params(contact) for contact in contacts]
        if not params:
            return 0
        with self._write_lock, self._connect() as conn:
            conn.executemany(sql.UPSERT_CONTACT_NAME, params)
        return len(params)

    def get_contact_name(self, peer_address: str) -> Optional[ContactName]:
        with self._connect() as conn:
            row = conn.execute(sql.SELECT_CONTACT_NAME, {"peer_address": peer_address}).fetchone()
        return sql.row_to_contact(row) if row else None

    def find_contacts(self, query: str, limit: int = 50) -> list[ContactName]:
        with self._connect() as conn:
            rows = conn.execute(
                sql.FIND_CONTACTS,
                {"pattern": sql.like_pattern(query), "limit": limit},
            ).fetchall()
        return [sql.row_to_contact(row) for row in rows]
