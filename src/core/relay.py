"""Core relay pipeline for both directions.

Telegram -> WhatsApp:
1) Resolve the destination (binding or reply chain)
2) Send to WhatsApp
3) Record the message pair
4) Acknowledge in the topic with a Revoke control

WhatsApp -> Telegram:
1) Drop ignored chats, ignored status authors and our own echoes
2) Resolve the topic and quoted message
3) Send to Telegram and record the message pair

Pairs are only written after the platform accepted the message.
"""

from __future__ import annotations

import html
import logging
from typing import Optional

from core.addresses import BROADCAST_SERVER, GROUP_SERVER, canonical_address, parse_address
from core.context import BridgeContext
from core.errors import AlreadyExists, CollaboratorFailure, InvalidInput
from core.models import HubMessage, MessageIdPair, PeerMessage, PeerOutbound, PeerRevocation
from core.ports import PeerEvent
from core.revoke import SENT_TEXT, revoke_keyboard
from core.routing import HubRoute, RouteDecision, RoutingResolver

LOGGER = logging.getLogger(__name__)

REVOKED_NOTICE = "<i>This message was revoked</i>"


def _non_device(raw: str) -> str:
    address, ok = parse_address(raw)
    return str(address.to_non_device()) if ok else raw


class BridgeRelay:
    """Moves messages between the hub chat and WhatsApp."""

    def __init__(self, context: BridgeContext, resolver: RoutingResolver) -> None:
        self._context = context
        self._resolver = resolver
        peer_config = context.config.peer
        self._ignored_chats = {canonical_address(chat) or chat for chat in peer_config.ignore_chats}
        self._ignored_status = {
            _non_device(chat) for chat in peer_config.status_ignored_chats
        }

    async def relay_from_hub(self, message: HubMessage) -> None:
        """Forward one hub message to WhatsApp, raising on routing or send failure."""

        decision = self._resolver.resolve_outbound(message)
        if decision is None:
            return
        await self.deliver(message, decision)

    async def deliver(self, message: HubMessage, decision: RouteDecision) -> None:
        """Send a hub message to an already resolved destination."""

        context = self._context
        if not message.text.strip() and message.photo is None:
            LOGGER.debug("Skipping empty hub message %s", message.message_id)
            return

        outbound = PeerOutbound(
            chat_address=decision.destination,
            text=message.text,
            reply_to_stanza_id=decision.reply_to_stanza_id,
            reply_to_participant=decision.reply_to_participant,
            photo=message.photo,
        )
        try:
            stanza_id = await context.peer.send_message(outbound)
        except CollaboratorFailure:
            raise
        except Exception as exc:
            raise CollaboratorFailure(str(exc), user_message="Failed to send to WhatsApp") from exc

        destination, _ = parse_address(decision.destination)
        participant = ""
        if destination.server == GROUP_SERVER:
            participant = _non_device(context.peer.own_address)
        self._record(
            MessageIdPair(
                hub_conversation_id=message.conversation_id,
                hub_message_id=message.message_id,
                hub_thread_id=message.thread_id,
                peer_stanza_id=stanza_id,
                peer_participant_address=participant,
                peer_chat_address=decision.destination,
            )
        )
        LOGGER.info("Relayed hub message %s to %s", message.message_id, decision.destination)

        try:
            controls = revoke_keyboard(stanza_id, decision.destination, confirm=False)
        except InvalidInput:
            LOGGER.warning("Stanza %s cannot be carried in a revoke control", stanza_id)
            controls = None
        await context.hub.send_text(
            message.conversation_id,
            message.thread_id,
            SENT_TEXT,
            reply_to=message.message_id,
            controls=controls,
        )

    async def relay_from_peer(self, message: PeerMessage) -> Optional[int]:
        """Forward one WhatsApp message to the hub chat; return the hub message id."""

        context = self._context
        peer_config = context.config.peer
        chat, ok = parse_address(message.chat_address)
        if not ok:
            LOGGER.warning("Dropping message from unparsable chat %r", message.chat_address)
            return None
        if str(chat.to_non_device()) in self._ignored_chats:
            return None
        if chat.server == BROADCAST_SERVER:
            if peer_config.skip_status_updates:
                return None
            if _non_device(message.sender_address) in self._ignored_status:
                return None
        if message.is_from_me and not peer_config.send_my_messages_from_other_devices:
            return None
        if not message.text.strip() and message.photo is None:
            return None

        route = self._resolver.resolve_inbound(message, context.conversation_id)
        body = self._header(message, route) + html.escape(message.text)

        if message.photo is not None:
            hub_message_id = await context.hub.send_photo(
                route.conversation_id,
                route.thread_id,
                message.photo,
                caption=body,
                reply_to=route.reply_to_message_id,
            )
        else:
            hub_message_id = await context.hub.send_text(
                route.conversation_id,
                route.thread_id,
                body,
                reply_to=route.reply_to_message_id,
            )

        self._record(
            MessageIdPair(
                hub_conversation_id=route.conversation_id,
                hub_message_id=hub_message_id,
                hub_thread_id=route.thread_id,
                peer_stanza_id=message.stanza_id,
                peer_participant_address=route.participant_address,
                peer_chat_address=route.peer_chat_address,
            )
        )
        return hub_message_id

    async def relay_revocation(self, event: PeerRevocation) -> None:
        """Mark the hub copy of a message its sender revoked on WhatsApp."""

        if not self._context.config.peer.send_revoked_message_updates:
            return
        chat_key = _non_device(event.chat_address)
        pair = self._context.store.get_hub_from_peer_message(chat_key, event.stanza_id)
        if pair is None:
            LOGGER.debug("Revoked stanza %s was never bridged", event.stanza_id)
            return
        await self._context.hub.send_text(
            pair.hub_conversation_id,
            pair.hub_thread_id,
            REVOKED_NOTICE,
            reply_to=pair.hub_message_id,
        )

    async def handle_peer_event(self, event: PeerEvent) -> None:
        """Entry point registered with the peer adapter."""

        try:
            if isinstance(event, PeerRevocation):
                await self.relay_revocation(event)
            else:
                await self.relay_from_peer(event)
        except Exception:
            LOGGER.exception("Error while relaying WhatsApp event")

    def _header(self, message: PeerMessage, route: HubRoute) -> str:
        sender = "You" if message.is_from_me else self._display_name(message)
        lines = []
        if not route.bound:
            lines.append(f"<b>{html.escape(sender)}</b> [<code>{html.escape(route.peer_chat_address)}</code>]")
        elif route.participant_address:
            lines.append(f"<b>{html.escape(sender)}</b>:")
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def _display_name(self, message: PeerMessage) -> str:
        address = _non_device(message.sender_address)
        contact = self._context.store.get_contact_name(address)
        if contact is not None:
            return contact.display_name
        return message.push_name or address.split("@", 1)[0]

    def _record(self, pair: MessageIdPair) -> None:
        try:
            self._context.store.put_message_id_pair(pair)
        except AlreadyExists:
            LOGGER.warning(
                "Pair for hub message %s / stanza %s already recorded",
                pair.hub_message_id,
                pair.peer_stanza_id,
            )
