"""SQL shared by the SQLite and Postgres correlation stores.

Statements use ``:name`` parameters, which both ``sqlite3`` and SQLAlchemy's
``text()`` accept, so the two adapters only differ in how they connect.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.models import ChatThreadPair, ContactName, MessageIdPair

# chat_thread_pairs binds one WhatsApp chat to one topic of the hub chat.
# Fields:
# - peer_chat_address: canonical JID of the WhatsApp chat (PRIMARY KEY)
# - hub_conversation_id: Telegram chat id of the forum supergroup
# - hub_thread_id: topic id inside that chat, 0 for the General topic
# The (hub_conversation_id, hub_thread_id) pair is unique as well so a topic
# never resolves to two WhatsApp chats.
CREATE_CHAT_THREAD_PAIRS = """
CREATE TABLE IF NOT EXISTS chat_thread_pairs (
    peer_chat_address TEXT PRIMARY KEY,
    hub_conversation_id BIGINT NOT NULL,
    hub_thread_id BIGINT NOT NULL,
    UNIQUE (hub_conversation_id, hub_thread_id)
)
"""

# message_id_pairs correlates relayed messages for replies and revokes.
# Fields:
# - hub_conversation_id, hub_message_id, hub_thread_id: Telegram identity
# - peer_stanza_id: WhatsApp message id
# - peer_participant_address: sender JID for group/status origins, else ''
# - peer_chat_address: WhatsApp chat the stanza lives in
CREATE_MESSAGE_ID_PAIRS = """
CREATE TABLE IF NOT EXISTS message_id_pairs (
    hub_conversation_id BIGINT NOT NULL,
    hub_message_id BIGINT NOT NULL,
    hub_thread_id BIGINT NOT NULL,
    peer_stanza_id TEXT NOT NULL,
    peer_participant_address TEXT NOT NULL DEFAULT '',
    peer_chat_address TEXT NOT NULL,
    PRIMARY KEY (hub_conversation_id, hub_message_id, hub_thread_id),
    UNIQUE (peer_chat_address, peer_stanza_id)
)
"""

# contact_names is a rebuildable display-name cache, never used for routing.
CREATE_CONTACT_NAMES = """
CREATE TABLE IF NOT EXISTS contact_names (
    peer_address TEXT PRIMARY KEY,
    first_name TEXT NOT NULL DEFAULT '',
    full_name TEXT NOT NULL DEFAULT '',
    push_name TEXT NOT NULL DEFAULT '',
    business_name TEXT NOT NULL DEFAULT ''
)
"""

SCHEMA = (CREATE_CHAT_THREAD_PAIRS, CREATE_MESSAGE_ID_PAIRS, CREATE_CONTACT_NAMES)

INSERT_CHAT_THREAD_PAIR = """
INSERT INTO chat_thread_pairs (peer_chat_address, hub_conversation_id, hub_thread_id)
VALUES (:peer_chat_address, :hub_conversation_id, :hub_thread_id)
"""

SELECT_PEER_FROM_HUB = """
SELECT peer_chat_address FROM chat_thread_pairs
WHERE hub_conversation_id = :hub_conversation_id AND hub_thread_id = :hub_thread_id
"""

SELECT_HUB_FROM_PEER = """
SELECT hub_thread_id FROM chat_thread_pairs
WHERE peer_chat_address = :peer_chat_address AND hub_conversation_id = :hub_conversation_id
"""

DELETE_CHAT_THREAD_PAIR = """
DELETE FROM chat_thread_pairs
WHERE hub_conversation_id = :hub_conversation_id AND hub_thread_id = :hub_thread_id
"""

DELETE_ALL_CHAT_THREAD_PAIRS = """
DELETE FROM chat_thread_pairs WHERE hub_conversation_id = :hub_conversation_id
"""

SELECT_CHAT_THREAD_PAIRS = """
SELECT peer_chat_address, hub_conversation_id, hub_thread_id FROM chat_thread_pairs
WHERE hub_conversation_id = :hub_conversation_id
ORDER BY hub_thread_id
"""

INSERT_MESSAGE_ID_PAIR = """
INSERT INTO message_id_pairs (
    hub_conversation_id,
    hub_message_id,
    hub_thread_id,
    peer_stanza_id,
    peer_participant_address,
    peer_chat_address
) VALUES (
    :hub_conversation_id,
    :hub_message_id,
    :hub_thread_id,
    :peer_stanza_id,
    :peer_participant_address,
    :peer_chat_address
)
"""

_MESSAGE_ID_PAIR_COLUMNS = """
SELECT hub_conversation_id, hub_message_id, hub_thread_id,
       peer_stanza_id, peer_participant_address, peer_chat_address
FROM message_id_pairs
"""

SELECT_PEER_FROM_HUB_MESSAGE = _MESSAGE_ID_PAIR_COLUMNS + """
WHERE hub_conversation_id = :hub_conversation_id
  AND hub_message_id = :hub_message_id
  AND hub_thread_id = :hub_thread_id
"""

SELECT_HUB_FROM_PEER_MESSAGE = _MESSAGE_ID_PAIR_COLUMNS + """
WHERE peer_chat_address = :peer_chat_address AND peer_stanza_id = :peer_stanza_id
"""

DELETE_MESSAGE_ID_PAIR = """
DELETE FROM message_id_pairs
WHERE hub_conversation_id = :hub_conversation_id AND hub_message_id = :hub_message_id
"""

DELETE_ALL_MESSAGE_ID_PAIRS = "DELETE FROM message_id_pairs"

UPSERT_CONTACT_NAME = """
INSERT INTO contact_names (peer_address, first_name, full_name, push_name, business_name)
VALUES (:peer_address, :first_name, :full_name, :push_name, :business_name)
ON CONFLICT (peer_address) DO UPDATE SET
    first_name = excluded.first_name,
    full_name = excluded.full_name,
    push_name = excluded.push_name,
    business_name = excluded.business_name
"""

_CONTACT_COLUMNS = """
SELECT peer_address, first_name, full_name, push_name, business_name FROM contact_names
"""

SELECT_CONTACT_NAME = _CONTACT_COLUMNS + "WHERE peer_address = :peer_address"

FIND_CONTACTS = _CONTACT_COLUMNS + """
WHERE LOWER(first_name) LIKE :pattern
   OR LOWER(full_name) LIKE :pattern
   OR LOWER(push_name) LIKE :pattern
   OR LOWER(business_name) LIKE :pattern
   OR peer_address LIKE :pattern
ORDER BY peer_address
LIMIT :limit
"""


def like_pattern(query: str) -> str:
    """Return a LIKE pattern matching ``query`` anywhere, case-insensitively."""

    return f"%{query.strip().lower()}%"


def message_id_pair_params(pair: MessageIdPair) -> dict[str, Any]:
    return {
        "hub_conversation_id": pair.hub_conversation_id,
        "hub_message_id": pair.hub_message_id,
        "hub_thread_id": pair.hub_thread_id,
        "peer_stanza_id": pair.peer_stanza_id,
        "peer_participant_address": pair.peer_participant_address,
        "peer_chat_address": pair.peer_chat_address,
    }


def contact_params(contact: ContactName) -> dict[str, Any]:
    return {
        "peer_address": contact.peer_address,
        "first_name": contact.first_name,
        "full_name": contact.full_name,
        "push_name": contact.push_name,
        "business_name": contact.business_name,
    }


def row_to_chat_thread_pair(row: Mapping[str, Any]) -> ChatThreadPair:
    return ChatThreadPair(
        peer_chat_address=row["peer_chat_address"],
        hub_conversation_id=int(row["hub_conversation_id"]),
        hub_thread_id=int(row["hub_thread_id"]),
    )


def row_to_message_id_pair(row: Mapping[str, Any]) -> MessageIdPair:
    return MessageIdPair(
        hub_conversation_id=int(row["hub_conversation_id"]),
        hub_message_id=int(row["hub_message_id"]),
        hub_thread_id=int(row["hub_thread_id"]),
        peer_stanza_id=row["peer_stanza_id"],
        peer_participant_address=row["peer_participant_address"] or "",
        peer_chat_address=row["peer_chat_address"],
    )


def row_to_contact(row: Mapping[str, Any]) -> ContactName:
    return ContactName(
        peer_address=row["peer_address"],
        first_name=row["first_name"] or "",
        full_name=row["full_name"] or "",
        push_name=row["push_name"] or "",
        business_name=row["business_name"] or "",
    )
