"""Administrative command operations (core domain).

Argument parsing and reply formatting live in the Telegram handler layer;
these methods only enforce the rules and talk to the store and the peer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from core.addresses import GROUP_SERVER, STATUS_BROADCAST, USER_SERVER, parse_address
from core.context import BridgeContext
from core.errors import AlreadyExists, CollaboratorFailure, InvalidInput, NotFound
from core.models import ContactName, GroupInfo, HubMessage
from core.relay import BridgeRelay
from core.revoke import RevokeWorkflow
from core.routing import RouteDecision

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicRename:
    thread_id: int
    peer_chat_address: str
    title: str


def _require_topic(message: HubMessage, conversation_id: int) -> None:
    if message.conversation_id != conversation_id:
        raise InvalidInput(
            f"Command sent in {message.conversation_id}, not the target chat",
            user_message="The command should be sent in the target chat",
        )
    if message.thread_id == 0:
        raise InvalidInput(
            "Command sent outside a topic",
            user_message="The command should be sent in a topic",
        )


async def _call_peer(coro, user_message: str):
    try:
        return await coro
    except CollaboratorFailure:
        raise
    except Exception as exc:
        raise CollaboratorFailure(str(exc), user_message=user_message) from exc


class BridgeCommands:
    """Operations behind the hub chat's slash commands."""

    def __init__(
        self, context: BridgeContext, revoke_workflow: RevokeWorkflow, relay: BridgeRelay
    ) -> None:
        self._context = context
        self._revoke = revoke_workflow
        self._relay = relay

    def is_authorized(self, sender_id: Optional[int]) -> bool:
        hub = self._context.config.hub
        if sender_id is None:
            return False
        return sender_id == hub.owner_id or sender_id in hub.sudo_user_ids

    async def bind_group(self, message: HubMessage, raw_group_id: str) -> str:
        """Bind the current topic to a WhatsApp group; return the group address."""

        _require_topic(message, self._context.conversation_id)
        address, ok = parse_address(raw_group_id)
        if not ok or address.server != GROUP_SERVER:
            raise InvalidInput(
                f"{raw_group_id!r} is not a group id",
                user_message="Provided group ID is not valid",
            )
        info = await _call_peer(
            self._context.peer.get_group_info(str(address)), "Failed to get group info"
        )
        return self._bind(info.address, message)

    async def bind_private(self, message: HubMessage, raw_user_id: str) -> str:
        """Bind the current topic to a WhatsApp contact; return the contact address."""

        _require_topic(message, self._context.conversation_id)
        address, ok = parse_address(raw_user_id)
        if not ok or address.server == GROUP_SERVER:
            raise InvalidInput(
                f"{raw_user_id!r} is not a user id",
                user_message="Provided user ID is not valid",
            )
        return self._bind(str(address.to_non_device()), message)

    def _bind(self, peer_chat_address: str, message: HubMessage) -> str:
        store = self._context.store
        existing = store.get_hub_from_peer(peer_chat_address, message.conversation_id)
        if existing is not None:
            raise AlreadyExists(
                f"{peer_chat_address} already bound to topic {existing}",
                user_message="A topic already exists in database for the given WhatsApp chat. Aborting...",
            )
        store.put_chat_thread_pair(peer_chat_address, message.conversation_id, message.thread_id)
        LOGGER.info("Bound %s to topic %s", peer_chat_address, message.thread_id)
        return peer_chat_address

    def unbind(self, message: HubMessage) -> None:
        _require_topic(message, self._context.conversation_id)
        if not self._context.store.delete_chat_thread_pair(message.conversation_id, message.thread_id):
            raise NotFound(
                f"Topic {message.thread_id} has no binding",
                user_message="No mapping found between current topic and a WhatsApp chat",
            )
        LOGGER.info("Unbound topic %s", message.thread_id)

    def clear_bindings(self) -> int:
        conversation_id = self._context.conversation_id
        removed = self._context.store.delete_all_chat_thread_pairs(conversation_id)
        LOGGER.info("Cleared %s bindings of %s", removed, conversation_id)
        return removed

    def clear_message_pairs(self) -> int:
        return self._context.store.delete_all_message_id_pairs()

    async def revoke_by_reply(self, message: HubMessage) -> None:
        if message.reply_to_message_id is None or message.reply_to_is_thread_marker:
            raise InvalidInput(
                "Revoke command without a replied message",
                user_message="Usage: Reply to a message, /revoke",
            )
        await self._revoke.revoke_by_reply(
            message.conversation_id, message.reply_to_message_id, message.thread_id
        )

    async def sync_contact_names(self) -> int:
        contacts = await _call_peer(self._context.peer.fetch_contacts(), "Failed to sync contacts")
        return self._context.store.upsert_contact_names(contacts)

    async def sync_topic_names(self) -> list[TopicRename]:
        """Rename every bound topic of the target chat after its WhatsApp chat.

        A topic that cannot be renamed is logged and skipped.
        """

        context = self._context
        conversation_id = context.conversation_id
        delay = context.config.hub.topic_sync_delay_seconds
        renamed: list[TopicRename] = []
        attempted = False
        for pair in context.store.list_chat_thread_pairs(conversation_id):
            if pair.peer_chat_address == STATUS_BROADCAST:
                continue
            title = await self._chat_title(pair.peer_chat_address)
            if not title:
                continue
            if attempted and delay > 0:
                # Topic edits are rate limited by Telegram.
                await asyncio.sleep(delay)
            attempted = True
            try:
                await context.hub.edit_topic_title(conversation_id, pair.hub_thread_id, title)
            except Exception:
                LOGGER.warning("Failed to rename topic %s", pair.hub_thread_id, exc_info=True)
                continue
            renamed.append(TopicRename(pair.hub_thread_id, pair.peer_chat_address, title))
        return renamed

    async def _chat_title(self, peer_chat_address: str) -> str:
        address, ok = parse_address(peer_chat_address)
        if not ok:
            LOGGER.warning("Skipping binding with invalid address %r", peer_chat_address)
            return ""
        if address.server == GROUP_SERVER:
            try:
                info = await self._context.peer.get_group_info(peer_chat_address)
            except Exception:
                LOGGER.warning("Failed to fetch group name for %s", peer_chat_address, exc_info=True)
                return ""
            return info.name
        contact = self._context.store.get_contact_name(peer_chat_address)
        if contact is not None:
            return contact.display_name
        return address.user if address.server == USER_SERVER else peer_chat_address

    def find_contacts(self, query: str) -> list[ContactName]:
        query = query.strip()
        if not query:
            raise InvalidInput("Empty contact query", user_message="Provide a name to search for")
        return self._context.store.find_contacts(query)

    async def list_groups(self) -> list[GroupInfo]:
        groups = await _call_peer(
            self._context.peer.get_joined_groups(), "Failed to retrieve the groups"
        )
        return sorted(groups, key=lambda group: group.name.lower())

    async def get_profile_picture(self, raw_address: str) -> bytes:
        address, ok = parse_address(raw_address)
        if not ok:
            raise InvalidInput(f"{raw_address!r} is not an address", user_message="Provided ID is not valid")
        picture = await _call_peer(
            self._context.peer.get_profile_picture(str(address.to_non_device())),
            "Failed to fetch profile picture info from WhatsApp",
        )
        if not picture:
            raise NotFound(f"No profile picture for {address}", user_message="No profile picture set")
        return picture

    async def send_to(self, message: HubMessage, raw_target: str) -> str:
        """Forward the replied hub message to an explicit WhatsApp chat."""

        if not message.is_reply:
            raise InvalidInput(
                "Send command without a replied message",
                user_message="Usage: Reply to a message, /send <target_id>",
            )
        address, ok = parse_address(raw_target)
        if not ok:
            raise InvalidInput(f"{raw_target!r} is not an address", user_message="Provided JID is not valid")
        destination = str(address.to_non_device())

        original = await self._context.hub.fetch_message(message.conversation_id, message.reply_to_message_id)
        if original is None:
            raise NotFound(
                f"Hub message {message.reply_to_message_id} is gone",
                user_message="The replied message could not be found",
            )
        if not original.text.strip() and original.photo is None:
            raise InvalidInput(
                f"Hub message {original.message_id} has no text or photo",
                user_message="The replied message has nothing to send",
            )
        await self._relay.deliver(original, RouteDecision(destination=destination))
        return destination

    async def join_invite_link(self, invite_link: str) -> str:
        """Join a WhatsApp group from an invite link; return the group address."""

        invite_link = invite_link.strip()
        if not invite_link:
            raise InvalidInput("Empty invite link", user_message="Provide an invite link")
        address = await _call_peer(self._context.peer.join_group_with_link(invite_link), "Failed to join")
        LOGGER.info("Joined WhatsApp group %s", address)
        return address

    async def restart_peer(self) -> None:
        await _call_peer(self._context.peer.reconnect(), "Failed to reconnect to WA servers")
        LOGGER.info("Restarted the WhatsApp connection")
