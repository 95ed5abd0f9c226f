"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChatThreadPair:
    """Binding between one WhatsApp chat and one topic of the hub chat."""

    peer_chat_address: str
    hub_conversation_id: int
    hub_thread_id: int


@dataclass(frozen=True)
class MessageIdPair:
    """Correlation between a hub message and the peer message it mirrors."""

    hub_conversation_id: int
    hub_message_id: int
    hub_thread_id: int
    peer_stanza_id: str
    peer_participant_address: str
    peer_chat_address: str


@dataclass(frozen=True)
class ContactName:
    """Cached display names for one WhatsApp address."""

    peer_address: str
    first_name: str = ""
    full_name: str = ""
    push_name: str = ""
    business_name: str = ""

    @property
    def display_name(self) -> str:
        for name in (self.full_name, self.first_name, self.push_name, self.business_name):
            if name:
                return name
        return self.peer_address.split("@", 1)[0]


@dataclass(frozen=True)
class GroupInfo:
    """Minimal group details returned by the peer platform."""

    address: str
    name: str


@dataclass(frozen=True)
class HubMessage:
    """Minimal hub message context used by routing and relaying."""

    conversation_id: int
    message_id: int
    thread_id: int
    sender_id: Optional[int]
    text: str
    reply_to_message_id: Optional[int] = None
    reply_to_is_thread_marker: bool = False
    photo: Optional[bytes] = None

    @property
    def is_reply(self) -> bool:
        return self.reply_to_message_id is not None and not self.reply_to_is_thread_marker


@dataclass(frozen=True)
class HubInteraction:
    """A press on an inline control, with everything needed to answer it."""

    query_id: int
    conversation_id: int
    message_id: int
    sender_id: Optional[int]
    data: str
    target_message_id: Optional[int] = None


@dataclass(frozen=True)
class ControlButton:
    """One inline button: a label and the token round-tripped on press."""

    label: str
    token: str


@dataclass(frozen=True)
class PeerMessage:
    """Inbound WhatsApp message in platform-neutral form."""

    chat_address: str
    sender_address: str
    stanza_id: str
    text: str
    is_from_me: bool = False
    reply_to_stanza_id: Optional[str] = None
    push_name: str = ""
    photo: Optional[bytes] = None


@dataclass(frozen=True)
class PeerRevocation:
    """Inbound notice that a WhatsApp message was revoked by its sender."""

    chat_address: str
    sender_address: str
    stanza_id: str


@dataclass(frozen=True)
class PeerOutbound:
    """Message the relay asks the peer adapter to deliver."""

    chat_address: str
    text: str
    reply_to_stanza_id: str = ""
    reply_to_participant: str = ""
    photo: Optional[bytes] = None
