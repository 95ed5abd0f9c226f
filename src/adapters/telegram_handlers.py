"""Telethon event handlers for the hub chat.

Handlers are the only place where core errors become replies: expected
failures are formatted for the user, anything else is logged and reported
generically.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional, Tuple

from telethon import TelegramClient, events

from adapters.formatting import (
    format_alert,
    format_contacts,
    format_error,
    format_groups,
    format_help,
    format_start,
    format_unexpected_error,
    format_usage,
)
from adapters.telegram_mapper import build_hub_interaction, build_hub_message
from core.commands import BridgeCommands
from core.context import BridgeContext
from core.errors import BridgeError
from core.models import HubInteraction, HubMessage
from core.relay import BridgeRelay
from core.revoke import TOKEN_PREFIX, RevokeWorkflow

LOGGER = logging.getLogger(__name__)

VERSION = "1.0.0"

COMMANDS: list[tuple[str, str]] = [
    ("getwagroups", "Get all the WhatsApp groups along with their JIDs"),
    ("findcontact", "Find contact JIDs from names in WhatsApp"),
    ("revoke", "Revoke a message from WhatsApp"),
    ("synccontacts", "Try to sync the contacts list from WhatsApp"),
    ("clearpairhistory", "Delete all the past stored message id pairs"),
    ("restartwa", "Restart the WhatsApp client"),
    ("joininvitelink", "Join a WhatsApp chat using invite link"),
    ("settargetgroupchat", "Set the target WhatsApp group chat for current thread"),
    ("settargetprivatechat", "Set the target WhatsApp private chat for current thread"),
    ("unsettarget", "Remove the WhatsApp chat bound to current thread"),
    ("clearbindings", "Remove every topic binding of the target chat"),
    ("getprofilepicture", "Get the profile picture of user or group using its ID"),
    ("synctopicnames", "Update the names of the topics created"),
    ("send", "Send a message to WhatsApp"),
    ("help", "Get all the available commands"),
]

_COMMAND_RE = re.compile(r"^/(\w+)(?:@\w+)?(?:\s+(.*))?$", re.DOTALL)
_COMMAND_NAMES = {"start"} | {name for name, _ in COMMANDS}


def parse_command(text: str) -> Optional[Tuple[str, str]]:
    """Return (command, argument) for a known slash command, else None."""

    match = _COMMAND_RE.match((text or "").strip())
    if not match:
        return None
    name = match.group(1).lower()
    if name not in _COMMAND_NAMES:
        return None
    return name, (match.group(2) or "").strip()


class CommandHandlers:
    """Turn slash commands into BridgeCommands calls and replies."""

    def __init__(self, context: BridgeContext, commands: BridgeCommands) -> None:
        self._context = context
        self._commands = commands

    async def handle(self, message: HubMessage, name: str, argument: str) -> None:
        handler = getattr(self, f"_cmd_{name}", None)
        if handler is None:
            return
        try:
            await handler(message, argument)
        except BridgeError as exc:
            LOGGER.info("/%s failed: %s", name, exc)
            await self._reply(message, format_error(exc))
        except Exception as exc:
            LOGGER.exception("Error while handling /%s", name)
            await self._reply(message, format_unexpected_error(f"Failed to run /{name}", exc))

    async def _reply(self, message: HubMessage, text: str) -> None:
        await self._context.hub.send_text(
            message.conversation_id, message.thread_id, text, reply_to=message.message_id
        )

    async def _cmd_start(self, message: HubMessage, argument: str) -> None:
        await self._reply(message, format_start(self._context.started_at, VERSION))

    async def _cmd_help(self, message: HubMessage, argument: str) -> None:
        await self._reply(message, format_help(COMMANDS))

    async def _cmd_getwagroups(self, message: HubMessage, argument: str) -> None:
        groups = await self._commands.list_groups()
        if not groups:
            await self._reply(message, "No WhatsApp groups joined")
            return
        for chunk in format_groups(groups):
            await self._reply(message, chunk)

    async def _cmd_findcontact(self, message: HubMessage, argument: str) -> None:
        if not argument:
            await self._reply(message, format_usage("/findcontact <search_string>", "/findcontact propheci"))
            return
        contacts = self._commands.find_contacts(argument)
        if not contacts:
            await self._reply(message, "No matching results found :(")
            return
        for chunk in format_contacts(contacts):
            await self._reply(message, chunk)

    async def _cmd_revoke(self, message: HubMessage, argument: str) -> None:
        await self._commands.revoke_by_reply(message)
        await self._reply(message, "<b>Successfully revoked</b>")

    async def _cmd_synccontacts(self, message: HubMessage, argument: str) -> None:
        await self._reply(message, "Syncing contacts, may take some time...")
        count = await self._commands.sync_contact_names()
        await self._reply(message, f"Successfully synced the contact list ({count} contacts)")

    async def _cmd_clearpairhistory(self, message: HubMessage, argument: str) -> None:
        self._commands.clear_message_pairs()
        await self._reply(message, "Successfully deleted all the stored pairs")

    async def _cmd_settargetgroupchat(self, message: HubMessage, argument: str) -> None:
        if not argument:
            await self._reply(message, "(Send in a topic) " + format_usage("/settargetgroupchat <group_id>"))
            return
        await self._commands.bind_group(message, argument)
        await self._reply(message, "Successfully mapped")

    async def _cmd_settargetprivatechat(self, message: HubMessage, argument: str) -> None:
        if not argument:
            await self._reply(message, "(Send in a topic) " + format_usage("/settargetprivatechat <user_id>"))
            return
        await self._commands.bind_private(message, argument)
        await self._reply(message, "Successfully mapped")

    async def _cmd_unsettarget(self, message: HubMessage, argument: str) -> None:
        self._commands.unbind(message)
        await self._reply(message, "Successfully removed the mapping")

    async def _cmd_clearbindings(self, message: HubMessage, argument: str) -> None:
        removed = self._commands.clear_bindings()
        await self._reply(message, f"Removed {removed} topic mapping(s)")

    async def _cmd_getprofilepicture(self, message: HubMessage, argument: str) -> None:
        if not argument:
            await self._reply(
                message,
                format_usage("/getprofilepicture <user/group_id>")
                + "\nYou need to add <code>@g.us</code> at the end for groups",
            )
            return
        picture = await self._commands.get_profile_picture(argument)
        await self._context.hub.send_photo(
            message.conversation_id, message.thread_id, picture, reply_to=message.message_id
        )

    async def _cmd_synctopicnames(self, message: HubMessage, argument: str) -> None:
        renamed = await self._commands.sync_topic_names()
        await self._reply(message, f"Successfully synced topic names ({len(renamed)} renamed)")

    async def _cmd_send(self, message: HubMessage, argument: str) -> None:
        if not argument or not message.is_reply:
            await self._reply(message, "Reply to a message, " + format_usage("/send <target_id>", "/send 628123xxx"))
            return
        await self._commands.send_to(message, argument)

    async def _cmd_joininvitelink(self, message: HubMessage, argument: str) -> None:
        if not argument:
            await self._reply(message, format_usage("/joininvitelink <invite_link>"))
            return
        address = await self._commands.join_invite_link(argument)
        await self._reply(message, f"Joined a new group with ID: <code>{html.escape(address)}</code>")

    async def _cmd_restartwa(self, message: HubMessage, argument: str) -> None:
        await self._commands.restart_peer()
        await self._reply(message, "Successfully restarted the WhatsApp connection")


async def answer_interaction_safely(
    context: BridgeContext, workflow: RevokeWorkflow, interaction: HubInteraction
) -> None:
    """Run the revoke workflow for one press; failures are answered as alerts."""

    try:
        await workflow.handle_interaction(interaction)
        return
    except BridgeError as exc:
        LOGGER.info("Interaction %s failed: %s", interaction.data, exc)
        text = format_alert(exc)
    except Exception:
        LOGGER.exception("Error while processing callback query")
        text = "Failed to process the button press"
    try:
        await context.hub.answer_interaction(interaction, text, alert=True)
    except Exception:
        LOGGER.exception("Failed to answer callback query %s", interaction.query_id)


def register_handlers(
    client: TelegramClient,
    context: BridgeContext,
    relay: BridgeRelay,
    commands: BridgeCommands,
    workflow: RevokeWorkflow,
) -> None:
    """Wire Telethon events to the core; one handler per event kind."""

    command_handlers = CommandHandlers(context, commands)

    @client.on(events.NewMessage(incoming=True))
    async def message_handler(event) -> None:
        try:
            if not commands.is_authorized(event.sender_id):
                return
            parsed = parse_command(event.raw_text)
            if parsed is not None:
                message = await build_hub_message(event.message, download_photo=False)
                await command_handlers.handle(message, *parsed)
                return
            if event.chat_id != context.conversation_id:
                return
            message = await build_hub_message(event.message)
            await relay.relay_from_hub(message)
        except BridgeError as exc:
            LOGGER.info("Relay of %s failed: %s", event.message.id, exc)
            await event.reply(format_error(exc), parse_mode="html")
        except Exception as exc:
            LOGGER.exception("Error while processing message")
            await event.reply(format_unexpected_error("Failed to send to WhatsApp", exc), parse_mode="html")

    @client.on(events.CallbackQuery(pattern=re.compile(rf"^{TOKEN_PREFIX}".encode())))
    async def callback_handler(event) -> None:
        try:
            if not commands.is_authorized(event.sender_id):
                await event.answer("Not allowed", alert=True)
                return
            interaction = await build_hub_interaction(event)
        except Exception:
            LOGGER.exception("Error while reading callback query")
            await event.answer("Failed to process the button press", alert=True)
            return
        await answer_interaction_safely(context, workflow, interaction)
