"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage, the Telegram hub and the
WhatsApp peer so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional, Protocol, Sequence, Union

from core.models import (
    ChatThreadPair,
    ContactName,
    ControlButton,
    GroupInfo,
    HubInteraction,
    HubMessage,
    MessageIdPair,
    PeerMessage,
    PeerOutbound,
    PeerRevocation,
)

Controls = Sequence[Sequence[ControlButton]]
PeerEvent = Union[PeerMessage, PeerRevocation]


class CorrelationStorePort(Protocol):
    """Persistent chat and message correlations.

    Lookups return None for "no such mapping"; storage failures raise.
    Writes raise AlreadyExists instead of overwriting.
    """

    def init_db(self) -> None:
        ...

    def put_chat_thread_pair(
        self, peer_chat_address: str, hub_conversation_id: int, hub_thread_id: int
    ) -> None:
        ...

    def get_peer_from_hub(self, hub_conversation_id: int, hub_thread_id: int) -> Optional[str]:
        ...

    def get_hub_from_peer(self, peer_chat_address: str, hub_conversation_id: int) -> Optional[int]:
        ...

    def delete_chat_thread_pair(self, hub_conversation_id: int, hub_thread_id: int) -> bool:
        ...

    def delete_all_chat_thread_pairs(self, hub_conversation_id: int) -> int:
        ...

    def list_chat_thread_pairs(self, hub_conversation_id: int) -> list[ChatThreadPair]:
        ...

    def put_message_id_pair(self, pair: MessageIdPair) -> None:
        ...

    def get_peer_from_hub_message(
        self, hub_conversation_id: int, hub_message_id: int, hub_thread_id: int
    ) -> Optional[MessageIdPair]:
        ...

    def get_hub_from_peer_message(
        self, peer_chat_address: str, peer_stanza_id: str
    ) -> Optional[MessageIdPair]:
        ...

    def delete_message_id_pair(self, hub_conversation_id: int, hub_message_id: int) -> int:
        ...

    def delete_all_message_id_pairs(self) -> int:
        ...

    def upsert_contact_names(self, contacts: Iterable[ContactName]) -> int:
        ...

    def get_contact_name(self, peer_address: str) -> Optional[ContactName]:
        ...

    def find_contacts(self, query: str, limit: int = 50) -> list[ContactName]:
        ...


class HubPort(Protocol):
    """Telegram operations required by the core."""

    async def send_text(
        self,
        conversation_id: int,
        thread_id: int,
        text: str,
        reply_to: Optional[int] = None,
        controls: Optional[Controls] = None,
    ) -> int:
        ...

    async def send_photo(
        self,
        conversation_id: int,
        thread_id: int,
        photo: bytes,
        caption: str = "",
        reply_to: Optional[int] = None,
    ) -> int:
        ...

    async def edit_control(
        self, conversation_id: int, message_id: int, text: str, controls: Controls
    ) -> None:
        ...

    async def answer_interaction(
        self, interaction: HubInteraction, text: str, alert: bool = False
    ) -> None:
        ...

    async def edit_topic_title(self, conversation_id: int, thread_id: int, title: str) -> None:
        ...

    async def fetch_message(self, conversation_id: int, message_id: int) -> Optional[HubMessage]:
        """Return an earlier hub message, or None when it no longer exists."""
        ...


class PeerPort(Protocol):
    """WhatsApp operations required by the core.

    Implementations raise CollaboratorFailure (or let the SDK error surface)
    when the platform rejects a call; the core never retries.
    """

    @property
    def own_address(self) -> str:
        ...

    async def has_session(self) -> bool:
        ...

    async def connect(self) -> None:
        ...

    async def reconnect(self) -> None:
        ...

    def pairing_events(self) -> AsyncIterator:
        ...

    def set_event_handler(self, handler: Callable[[PeerEvent], Awaitable[None]]) -> None:
        ...

    async def send_message(self, outbound: PeerOutbound) -> str:
        ...

    async def send_revoke(self, chat_address: str, stanza_id: str) -> None:
        ...

    async def get_group_info(self, address: str) -> GroupInfo:
        ...

    async def get_joined_groups(self) -> list[GroupInfo]:
        ...

    async def fetch_contacts(self) -> list[ContactName]:
        ...

    async def get_profile_picture(self, address: str) -> Optional[bytes]:
        ...

    async def join_group_with_link(self, invite_link: str) -> str:
        """Join a group from an invite link and return its address."""
        ...
