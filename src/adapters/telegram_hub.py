"""Telegram hub adapter.

Implements the core HubPort with a Telethon bot client. Every text is sent
with HTML parse mode so the formatting helpers stay the single source of markup.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

from telethon import Button, TelegramClient
from telethon.tl.functions.messages import EditForumTopicRequest
from telethon.tl.functions.messages import SetBotCallbackAnswerRequest
from telethon.tl.types import ReplyInlineMarkup

from adapters.telegram_mapper import build_hub_message
from core.models import HubInteraction, HubMessage
from core.ports import Controls

LOGGER = logging.getLogger(__name__)

# Alerts are cached so a double tap does not re-run the same confirmation.
ALERT_CACHE_SECONDS = 60


def _buttons(controls: Optional[Controls]):
    if not controls:
        return None
    return [
        [Button.inline(button.label, data=button.token.encode("utf-8")) for button in row]
        for row in controls
    ]


def _reply_target(thread_id: int, reply_to: Optional[int]) -> Optional[int]:
    # Replying to the topic id is how a message lands inside a forum topic.
    if reply_to:
        return reply_to
    return thread_id or None


class TelegramHub:
    """HubPort adapter that drives the bot through Telethon."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def send_text(
        self,
        conversation_id: int,
        thread_id: int,
        text: str,
        reply_to: Optional[int] = None,
        controls: Optional[Controls] = None,
    ) -> int:
        message = await self._client.send_message(
            conversation_id,
            text,
            reply_to=_reply_target(thread_id, reply_to),
            parse_mode="html",
            buttons=_buttons(controls),
            link_preview=False,
        )
        return message.id

    async def send_photo(
        self,
        conversation_id: int,
        thread_id: int,
        photo: bytes,
        caption: str = "",
        reply_to: Optional[int] = None,
    ) -> int:
        upload = io.BytesIO(photo)
        # Telethon picks the media type from the file name.
        upload.name = "photo.jpg"
        message = await self._client.send_file(
            conversation_id,
            upload,
            caption=caption,
            reply_to=_reply_target(thread_id, reply_to),
            parse_mode="html",
        )
        return message.id

    async def edit_control(
        self, conversation_id: int, message_id: int, text: str, controls: Controls
    ) -> None:
        # An empty inline markup removes the buttons; None would keep them.
        buttons = _buttons(controls) or ReplyInlineMarkup(rows=[])
        await self._client.edit_message(
            conversation_id,
            message_id,
            text,
            parse_mode="html",
            buttons=buttons,
        )

    async def answer_interaction(
        self, interaction: HubInteraction, text: str, alert: bool = False
    ) -> None:
        await self._client(
            SetBotCallbackAnswerRequest(
                query_id=interaction.query_id,
                cache_time=ALERT_CACHE_SECONDS if alert else 0,
                alert=alert,
                message=text,
            )
        )

    async def edit_topic_title(self, conversation_id: int, thread_id: int, title: str) -> None:
        entity = await self._client.get_input_entity(conversation_id)
        await self._client(EditForumTopicRequest(peer=entity, topic_id=thread_id, title=title[:128]))
        LOGGER.info("Renamed topic %s to %s", thread_id, title)

    async def fetch_message(self, conversation_id: int, message_id: int) -> Optional[HubMessage]:
        message = await self._client.get_messages(conversation_id, ids=message_id)
        if message is None:
            return None
        return await build_hub_message(message)
