"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional, Tuple

from telethon.tl.custom import Message

from core.models import HubInteraction, HubMessage


def _topic_id_from_message(message: Message) -> int:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return 0
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None) or 0


def _reply_target(message: Message) -> Tuple[Optional[int], bool]:
    """Return (replied message id, whether it is the topic creation message)."""

    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None, False
    reply_to_msg_id = getattr(reply_to, "reply_to_msg_id", None)
    if reply_to_msg_id is None:
        return None, False
    # Inside a topic, a message that is not a reply still points at the
    # topic's service message; only reply_to_top_id marks a real reply.
    if getattr(reply_to, "forum_topic", False) and not getattr(reply_to, "reply_to_top_id", None):
        return reply_to_msg_id, True
    return reply_to_msg_id, False


async def build_hub_message(message: Message, download_photo: bool = True) -> HubMessage:
    """Build a core HubMessage from a Telethon Message."""

    reply_to_message_id, is_thread_marker = _reply_target(message)
    photo = None
    if download_photo and getattr(message, "photo", None) is not None:
        photo = await message.download_media(file=bytes)

    return HubMessage(
        conversation_id=message.chat_id,
        message_id=message.id,
        thread_id=_topic_id_from_message(message),
        sender_id=getattr(message, "sender_id", None),
        text=message.raw_text or "",
        reply_to_message_id=reply_to_message_id,
        reply_to_is_thread_marker=is_thread_marker,
        photo=photo,
    )


async def build_hub_interaction(event) -> HubInteraction:
    """Build a core HubInteraction from a Telethon CallbackQuery event."""

    data = event.data or b""
    target_message_id = None
    message = await event.get_message()
    if message is not None:
        reply_to_message_id, is_thread_marker = _reply_target(message)
        if not is_thread_marker:
            target_message_id = reply_to_message_id

    return HubInteraction(
        query_id=event.query.query_id,
        conversation_id=event.chat_id,
        message_id=event.message_id,
        sender_id=event.sender_id,
        data=data.decode("utf-8", errors="replace"),
        target_message_id=target_message_id,
    )
