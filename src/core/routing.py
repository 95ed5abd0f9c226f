"""Routing between Telegram topics and WhatsApp chats (core domain).

Resolution only reads the correlation store; recording new pairs is the
relay's job once a send has actually succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.addresses import (
    BROADCAST_SERVER,
    GROUP_SERVER,
    PeerAddress,
    parse_address,
)
from core.errors import BrokenChain, InvalidInput, NotFound
from core.models import HubMessage, PeerMessage
from core.ports import CorrelationStorePort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteDecision:
    """Where a hub message goes on WhatsApp and what it quotes."""

    destination: str
    reply_to_stanza_id: str = ""
    reply_to_participant: str = ""
    is_reply_to_real_message: bool = False


@dataclass(frozen=True)
class HubRoute:
    """Where a WhatsApp message lands in the hub chat."""

    conversation_id: int
    thread_id: int
    peer_chat_address: str
    participant_address: str = ""
    reply_to_message_id: Optional[int] = None
    bound: bool = True


def _parse_or_raise(raw: str, what: str) -> PeerAddress:
    address, ok = parse_address(raw)
    if not ok:
        raise InvalidInput(
            f"Stored {what} {raw!r} is not a valid WhatsApp address",
            user_message=f"The {what} recorded for this message is not a valid WhatsApp address",
        )
    return address


def _same_person(raw: str, own_address: str) -> bool:
    address, ok = parse_address(raw)
    return ok and str(address.to_non_device()) == own_address


class RoutingResolver:
    """Resolve destinations in both directions from stored correlations."""

    def __init__(self, store: CorrelationStorePort, own_address: str) -> None:
        self._store = store
        own, ok = parse_address(own_address)
        self._own_address = str(own.to_non_device()) if ok else own_address

    def resolve_outbound(self, message: HubMessage) -> Optional[RouteDecision]:
        """Return the WhatsApp destination for a hub message.

        Returns None when the message arrived in the General topic and no chat
        is bound there; that conversation has not opted into default routing.
        """

        stanza_id = ""
        participant = ""

        if message.is_reply:
            pair = self._store.get_peer_from_hub_message(
                message.conversation_id, message.reply_to_message_id, message.thread_id
            )
            if pair is None:
                raise BrokenChain(
                    f"No stanza recorded for hub message {message.reply_to_message_id} "
                    f"in thread {message.thread_id}",
                    user_message="Corresponding stanza ID to replied to message not found",
                )
            stanza_id = pair.peer_stanza_id
            participant = pair.peer_participant_address
            chat_address = pair.peer_chat_address
            # Direct-message copies of our own messages are stored against our
            # own address; the real counterpart is the participant.
            if _same_person(chat_address, self._own_address) and participant:
                chat_address = participant
        else:
            chat_address = self._store.get_peer_from_hub(message.conversation_id, message.thread_id)
            if chat_address is None:
                if message.thread_id == 0:
                    LOGGER.debug("No default chat bound for %s, ignoring", message.conversation_id)
                    return None
                raise NotFound(
                    f"No chat bound to topic {message.thread_id}",
                    user_message="No mapping found between current topic and a WhatsApp chat",
                )

        destination = _parse_or_raise(chat_address, "chat")
        if destination.server == BROADCAST_SERVER:
            # Status updates have no per-viewer chat; answer their author.
            if not participant:
                raise InvalidInput(
                    f"Broadcast destination {chat_address} has no participant",
                    user_message="Cannot reply to a status update without its author",
                )
            destination = _parse_or_raise(participant, "participant").to_non_device()
            participant = str(destination)
        elif participant:
            participant = str(_parse_or_raise(participant, "participant").to_non_device())

        return RouteDecision(
            destination=str(destination),
            reply_to_stanza_id=stanza_id,
            reply_to_participant=participant,
            is_reply_to_real_message=message.is_reply,
        )

    def resolve_inbound(self, message: PeerMessage, conversation_id: int) -> HubRoute:
        """Return the hub topic and reply target for a WhatsApp message."""

        chat = _parse_or_raise(message.chat_address, "chat")
        participant = ""
        if chat.server in (GROUP_SERVER, BROADCAST_SERVER):
            sender, ok = parse_address(message.sender_address)
            if ok:
                participant = str(sender.to_non_device())

        chat_key = str(chat.to_non_device())

        thread_id = self._store.get_hub_from_peer(chat_key, conversation_id)
        bound = thread_id is not None

        reply_to_message_id = None
        if message.reply_to_stanza_id:
            pair = self._store.get_hub_from_peer_message(chat_key, message.reply_to_stanza_id)
            if pair is not None and pair.hub_conversation_id == conversation_id:
                reply_to_message_id = pair.hub_message_id
            else:
                LOGGER.debug("Quoted stanza %s has no hub copy", message.reply_to_stanza_id)

        return HubRoute(
            conversation_id=conversation_id,
            thread_id=thread_id if bound else 0,
            peer_chat_address=chat_key,
            participant_address=participant,
            reply_to_message_id=reply_to_message_id,
            bound=bound,
        )
