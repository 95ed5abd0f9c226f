from __future__ import annotations

import asyncio

from adapters.telegram_mapper import build_hub_interaction, build_hub_message


class DummyReply:
    def __init__(
        self,
        forum_topic: bool,
        reply_to_top_id: "int | None",
        reply_to_msg_id: "int | None",
    ) -> None:
        self.forum_topic = forum_topic
        self.reply_to_top_id = reply_to_top_id
        self.reply_to_msg_id = reply_to_msg_id


class DummyMessage:
    def __init__(
        self,
        *,
        chat_id: int,
        message_id: int,
        text: str,
        reply_to=None,
        sender_id: int = 42,
        photo=None,
    ) -> None:
        self.chat_id = chat_id
        self.id = message_id
        self.raw_text = text
        self.reply_to = reply_to
        self.sender_id = sender_id
        self.photo = photo
        self.downloads = 0

    async def download_media(self, file=None) -> bytes:
        self.downloads += 1
        return b"jpeg"


class DummyQuery:
    def __init__(self, query_id: int) -> None:
        self.query_id = query_id


class DummyCallbackEvent:
    def __init__(self, data: bytes, message: DummyMessage) -> None:
        self.data = data
        self.query = DummyQuery(9001)
        self.chat_id = message.chat_id
        self.message_id = message.id
        self.sender_id = 42
        self._message = message

    async def get_message(self) -> DummyMessage:
        return self._message


def test_topic_reply_uses_reply_to_top_id() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=555, reply_to_msg_id=111)
    message = DummyMessage(chat_id=-100123, message_id=10, text="hello", reply_to=reply_to)

    hub_message = asyncio.run(build_hub_message(message))

    assert hub_message.thread_id == 555
    assert hub_message.reply_to_message_id == 111
    assert hub_message.is_reply


def test_plain_topic_message_points_at_thread_marker() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=None, reply_to_msg_id=777)
    message = DummyMessage(chat_id=-100123, message_id=10, text="hello", reply_to=reply_to)

    hub_message = asyncio.run(build_hub_message(message))

    assert hub_message.thread_id == 777
    assert hub_message.reply_to_message_id == 777
    assert hub_message.reply_to_is_thread_marker
    assert not hub_message.is_reply


def test_general_topic_reply_is_a_real_reply() -> None:
    reply_to = DummyReply(forum_topic=False, reply_to_top_id=None, reply_to_msg_id=31)
    message = DummyMessage(chat_id=-100123, message_id=40, text="hi", reply_to=reply_to)

    hub_message = asyncio.run(build_hub_message(message))

    assert hub_message.thread_id == 0
    assert hub_message.is_reply


def test_no_reply_maps_to_general_topic() -> None:
    message = DummyMessage(chat_id=-100123, message_id=10, text="hello")

    hub_message = asyncio.run(build_hub_message(message))

    assert hub_message.thread_id == 0
    assert hub_message.reply_to_message_id is None
    assert hub_message.sender_id == 42


def test_photo_download_can_be_skipped() -> None:
    message = DummyMessage(chat_id=-100123, message_id=10, text="", photo=object())

    assert asyncio.run(build_hub_message(message)).photo == b"jpeg"
    assert asyncio.run(build_hub_message(message, download_photo=False)).photo is None
    assert message.downloads == 1


def test_interaction_targets_the_relayed_message() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=5, reply_to_msg_id=70)
    control = DummyMessage(chat_id=-100123, message_id=71, text="Successfully sent", reply_to=reply_to)

    interaction = asyncio.run(build_hub_interaction(DummyCallbackEvent(b"revoke_S1_C1", control)))

    assert interaction.data == "revoke_S1_C1"
    assert interaction.message_id == 71
    assert interaction.target_message_id == 70
    assert interaction.query_id == 9001


def test_interaction_ignores_thread_marker_target() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=None, reply_to_msg_id=5)
    control = DummyMessage(chat_id=-100123, message_id=71, text="Successfully sent", reply_to=reply_to)

    interaction = asyncio.run(build_hub_interaction(DummyCallbackEvent(b"revoke_S1_C1", control)))

    assert interaction.target_message_id is None
