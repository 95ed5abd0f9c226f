"""Postgres storage adapter.

Implements the core CorrelationStorePort on top of a SQLAlchemy engine. The
statements are the same ones the SQLite adapter runs; uniqueness is enforced
by the database, so concurrent writers from several processes stay safe.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from adapters import correlation_sql as sql
from core.errors import AlreadyExists
from core.models import ChatThreadPair, ContactName, MessageIdPair

LOGGER = logging.getLogger(__name__)


def _engine_url(url: str) -> str:
    # Plain postgres:// URLs select the psycopg (v3) driver.
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


class PostgresCorrelationStore:
    """SQLAlchemy Core wrapper that satisfies the CorrelationStorePort contract."""

    def __init__(self, url: str, engine: Optional[Engine] = None) -> None:
        self._engine = engine or create_engine(_engine_url(url), pool_pre_ping=True)

    def init_db(self) -> None:
        with self._engine.begin() as conn:
            for statement in sql.SCHEMA:
                conn.execute(text(statement))

    def put_chat_thread_pair(
        self, peer_chat_address: str, hub_conversation_id: int, hub_thread_id: int
    ) -> None:
        params = {
            "peer_chat_address": peer_chat_address,
            "hub_conversation_id": hub_conversation_id,
            "hub_thread_id": hub_thread_id,
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(text(sql.INSERT_CHAT_THREAD_PAIR), params)
        except IntegrityError as exc:
            raise AlreadyExists(
                f"Binding for {peer_chat_address} or topic {hub_thread_id} already exists",
                user_message="A topic already exists in database for the given WhatsApp chat",
            ) from exc

    def get_peer_from_hub(self, hub_conversation_id: int, hub_thread_id: int) -> Optional[str]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql.SELECT_PEER_FROM_HUB),
                {"hub_conversation_id": hub_conversation_id, "hub_thread_id": hub_thread_id},
            ).mappings().first()
        return row["peer_chat_address"] if row else None

    def get_hub_from_peer(self, peer_chat_address: str, hub_conversation_id: int) -> Optional[int]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql.SELECT_HUB_FROM_PEER),
                {"peer_chat_address": peer_chat_address, "hub_conversation_id": hub_conversation_id},
            ).mappings().first()
        return int(row["hub_thread_id"]) if row else None

    def delete_chat_thread_pair(self, hub_conversation_id: int, hub_thread_id: int) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                text(sql.DELETE_CHAT_THREAD_PAIR),
                {"hub_conversation_id": hub_conversation_id, "hub_thread_id": hub_thread_id},
            )
            return result.rowcount > 0

    def delete_all_chat_thread_pairs(self, hub_conversation_id: int) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                text(sql.DELETE_ALL_CHAT_THREAD_PAIRS),
                {"hub_conversation_id": hub_conversation_id},
            )
            return result.rowcount

    def list_chat_thread_pairs(self, hub_conversation_id: int) -> list[ChatThreadPair]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(sql.SELECT_CHAT_THREAD_PAIRS),
                {"hub_conversation_id": hub_conversation_id},
            ).mappings().all()
        return [sql.row_to_chat_thread_pair(row) for row in rows]

    def put_message_id_pair(self, pair: MessageIdPair) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(text(sql.INSERT_MESSAGE_ID_PAIR), sql.message_id_pair_params(pair))
        except IntegrityError as exc:
            raise AlreadyExists(
                f"Message pair for {pair.hub_conversation_id}/{pair.hub_message_id} "
                f"or stanza {pair.peer_stanza_id} already exists"
            ) from exc

    def get_peer_from_hub_message(
        self, hub_conversation_id: int, hub_message_id: int, hub_thread_id: int
    ) -> Optional[MessageIdPair]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql.SELECT_PEER_FROM_HUB_MESSAGE),
                {
                    "hub_conversation_id": hub_conversation_id,
                    "hub_message_id": hub_message_id,
                    "hub_thread_id": hub_thread_id,
                },
            ).mappings().first()
        return sql.row_to_message_id_pair(row) if row else None

    def get_hub_from_peer_message(
        self, peer_chat_address: str, peer_stanza_id: str
    ) -> Optional[MessageIdPair]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql.SELECT_HUB_FROM_PEER_MESSAGE),
                {"peer_chat_address": peer_chat_address, "peer_stanza_id": peer_stanza_id},
            ).mappings().first()
        return sql.row_to_message_id_pair(row) if row else None

    def delete_message_id_pair(self, hub_conversation_id: int, hub_message_id: int) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                text(sql.DELETE_MESSAGE_ID_PAIR),
                {"hub_conversation_id": hub_conversation_id, "hub_message_id": hub_message_id},
            )
            return result.rowcount

    def delete_all_message_id_pairs(self) -> int:
        with self._engine.begin() as conn:
            removed = conn.execute(text(sql.DELETE_ALL_MESSAGE_ID_PAIRS)).rowcount
        LOGGER.info("Cleared %s message id pairs", removed)
        return removed

    def upsert_contact_names(self, contacts: Iterable[ContactName]) -> int:
        params = [sql.contact_params(contact) for contact in contacts]
        if not params:
            return 0
        with self._engine.begin() as conn:
            conn.execute(text(sql.UPSERT_CONTACT_NAME), params)
        return len(params)

    def get_contact_name(self, peer_address: str) -> Optional[ContactName]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql.SELECT_CONTACT_NAME), {"peer_address": peer_address}
            ).mappings().first()
        return sql.row_to_contact(row) if row else None

    def find_contacts(self, query: str, limit: int = 50) -> list[ContactName]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(sql.FIND_CONTACTS),
                {"pattern": sql.like_pattern(query), "limit": limit},
            ).mappings().all()
        return [sql.row_to_contact(row) for row in rows]
