from __future__ import annotations

import pytest

from core.errors import BrokenChain, InvalidInput, NotFound
from core.models import HubMessage, MessageIdPair, PeerMessage
from core.routing import RoutingResolver
from fakes import CONVERSATION, GROUP, OWN_ADDRESS, FakeStore

CONTACT = "628123456@s.whatsapp.net"


def _message(thread_id: int = 7, message_id: int = 100, reply_to: "int | None" = None) -> HubMessage:
    return HubMessage(
        conversation_id=CONVERSATION,
        message_id=message_id,
        thread_id=thread_id,
        sender_id=42,
        text="hello",
        reply_to_message_id=reply_to,
    )


def _resolver(store: FakeStore) -> RoutingResolver:
    return RoutingResolver(store, OWN_ADDRESS)


def test_bound_topic_routes_to_its_chat() -> None:
    store = FakeStore()
    store.put_chat_thread_pair(GROUP, CONVERSATION, 7)

    decision = _resolver(store).resolve_outbound(_message())

    assert decision.destination == GROUP
    assert decision.reply_to_stanza_id == ""
    assert not decision.is_reply_to_real_message


def test_unbound_general_topic_is_ignored() -> None:
    assert _resolver(FakeStore()).resolve_outbound(_message(thread_id=0)) is None


def test_unbound_topic_raises_not_found() -> None:
    with pytest.raises(NotFound) as excinfo:
        _resolver(FakeStore()).resolve_outbound(_message(thread_id=9))

    assert "No mapping found" in excinfo.value.user_message


def test_thread_marker_is_not_treated_as_reply() -> None:
    store = FakeStore()
    store.put_chat_thread_pair(GROUP, CONVERSATION, 7)
    message = HubMessage(
        conversation_id=CONVERSATION,
        message_id=100,
        thread_id=7,
        sender_id=42,
        text="hello",
        reply_to_message_id=7,
        reply_to_is_thread_marker=True,
    )

    assert _resolver(store).resolve_outbound(message).destination == GROUP


def test_reply_uses_recorded_stanza_and_participant() -> None:
    store = FakeStore()
    store.put_message_id_pair(
        MessageIdPair(CONVERSATION, 55, 7, "3EB0AAA", "628777:3@s.whatsapp.net", GROUP)
    )

    decision = _resolver(store).resolve_outbound(_message(reply_to=55))

    assert decision.destination == GROUP
    assert decision.reply_to_stanza_id == "3EB0AAA"
    assert decision.reply_to_participant == "628777@s.whatsapp.net"
    assert decision.is_reply_to_real_message


def test_reply_without_pair_is_a_broken_chain() -> None:
    store = FakeStore()
    store.put_chat_thread_pair(GROUP, CONVERSATION, 7)

    with pytest.raises(BrokenChain) as excinfo:
        _resolver(store).resolve_outbound(_message(reply_to=55))

    assert excinfo.value.user_message == "Corresponding stanza ID to replied to message not found"


def test_reply_pair_from_another_thread_does_not_match() -> None:
    store = FakeStore()
    store.put_message_id_pair(MessageIdPair(CONVERSATION, 55, 8, "3EB0AAA", "", CONTACT))

    with pytest.raises(BrokenChain):
        _resolver(store).resolve_outbound(_message(reply_to=55))


def test_reply_to_status_goes_to_its_author() -> None:
    store = FakeStore()
    store.put_message_id_pair(
        MessageIdPair(CONVERSATION, 55, 0, "3EB0STS", "628777:4@s.whatsapp.net", "status@broadcast")
    )

    decision = _resolver(store).resolve_outbound(_message(thread_id=0, reply_to=55))

    assert decision.destination == "628777@s.whatsapp.net"
    assert decision.reply_to_participant == "628777@s.whatsapp.net"
    assert decision.reply_to_stanza_id == "3EB0STS"


def test_broadcast_without_participant_is_rejected() -> None:
    store = FakeStore()
    store.put_message_id_pair(MessageIdPair(CONVERSATION, 55, 0, "3EB0STS", "", "status@broadcast"))

    with pytest.raises(InvalidInput):
        _resolver(store).resolve_outbound(_message(thread_id=0, reply_to=55))


def test_reply_to_own_chat_copy_goes_to_participant() -> None:
    store = FakeStore()
    store.put_message_id_pair(
        MessageIdPair(CONVERSATION, 55, 7, "3EB0OWN", CONTACT, "628000000001@s.whatsapp.net")
    )

    decision = _resolver(store).resolve_outbound(_message(reply_to=55))

    assert decision.destination == CONTACT


def test_inbound_group_message_lands_in_bound_topic() -> None:
    store = FakeStore()
    store.put_chat_thread_pair(GROUP, CONVERSATION, 7)
    store.put_message_id_pair(MessageIdPair(CONVERSATION, 55, 7, "3EB0AAA", "", GROUP))
    message = PeerMessage(
        chat_address=GROUP,
        sender_address="628777:5@s.whatsapp.net",
        stanza_id="3EB0BBB",
        text="hi",
        reply_to_stanza_id="3EB0AAA",
    )

    route = _resolver(store).resolve_inbound(message, CONVERSATION)

    assert route.thread_id == 7
    assert route.bound
    assert route.participant_address == "628777@s.whatsapp.net"
    assert route.reply_to_message_id == 55


def test_inbound_unbound_chat_falls_back_to_general_topic() -> None:
    message = PeerMessage(
        chat_address="628123456:2@s.whatsapp.net",
        sender_address="628123456:2@s.whatsapp.net",
        stanza_id="3EB0BBB",
        text="hi",
        reply_to_stanza_id="3EB0GONE",
    )

    route = _resolver(FakeStore()).resolve_inbound(message, CONVERSATION)

    assert route.thread_id == 0
    assert not route.bound
    assert route.peer_chat_address == CONTACT
    assert route.participant_address == ""
    assert route.reply_to_message_id is None


def test_inbound_invalid_chat_is_rejected() -> None:
    message = PeerMessage(chat_address="garbage", sender_address="", stanza_id="X", text="hi")

    with pytest.raises(InvalidInput):
        _resolver(FakeStore()).resolve_inbound(message, CONVERSATION)
