from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from adapters.postgres_storage import PostgresCorrelationStore, _engine_url
from core.errors import AlreadyExists
from core.models import ContactName, MessageIdPair

GROUP = "120363025246125888@g.us"


@pytest.fixture
def store() -> PostgresCorrelationStore:
    # The SQL is portable, so an in-memory SQLite engine exercises the adapter.
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    store = PostgresCorrelationStore("unused", engine=engine)
    store.init_db()
    return store


def test_engine_url_selects_psycopg() -> None:
    assert _engine_url("postgres://u@h/db") == "postgresql+psycopg://u@h/db"
    assert _engine_url("postgresql://u@h/db") == "postgresql+psycopg://u@h/db"
    assert _engine_url("postgresql+psycopg://u@h/db") == "postgresql+psycopg://u@h/db"


def test_bindings(store: PostgresCorrelationStore) -> None:
    store.put_chat_thread_pair(GROUP, -100555, 7)

    with pytest.raises(AlreadyExists):
        store.put_chat_thread_pair(GROUP, -100555, 8)

    assert store.get_peer_from_hub(-100555, 7) == GROUP
    assert store.get_hub_from_peer(GROUP, -100555) == 7
    assert [pair.hub_thread_id for pair in store.list_chat_thread_pairs(-100555)] == [7]
    assert store.delete_chat_thread_pair(-100555, 7) is True
    assert store.get_peer_from_hub(-100555, 7) is None


def test_message_pairs(store: PostgresCorrelationStore) -> None:
    pair = MessageIdPair(-100555, 100, 7, "3EB0AAA", "", GROUP)
    store.put_message_id_pair(pair)

    with pytest.raises(AlreadyExists):
        store.put_message_id_pair(MessageIdPair(-100555, 101, 7, "3EB0AAA", "", GROUP))

    assert store.get_peer_from_hub_message(-100555, 100, 7) == pair
    assert store.get_hub_from_peer_message(GROUP, "3EB0AAA") == pair
    assert store.delete_message_id_pair(-100555, 100) == 1
    assert store.get_hub_from_peer_message(GROUP, "3EB0AAA") is None


def test_contacts(store: PostgresCorrelationStore) -> None:
    store.upsert_contact_names([ContactName("628123@s.whatsapp.net", push_name="Ana")])
    store.upsert_contact_names([ContactName("628123@s.whatsapp.net", full_name="Ana Lima")])

    assert store.get_contact_name("628123@s.whatsapp.net").display_name == "Ana Lima"
    assert [contact.full_name for contact in store.find_contacts("lima")] == ["Ana Lima"]
