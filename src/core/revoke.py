"""Revoke workflow: direct revokes and the two-step confirmation control.

The confirmation state lives entirely in the callback token that Telegram
round-trips back to us, so there is no server-side session table and a stale
button simply re-validates against the current store.

Token wire format (underscore delimited):
- ``revoke_<stanza>_<chat>``      initial press
- ``revoke_<stanza>_<chat>_no``   abort
- ``revoke_<stanza>_<chat>_yes``  confirm
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from core.errors import CollaboratorFailure, InvalidInput, NotFound
from core.models import ControlButton, HubInteraction
from core.ports import Controls, CorrelationStorePort, HubPort, PeerPort

LOGGER = logging.getLogger(__name__)

TOKEN_PREFIX = "revoke"
TOKEN_DELIMITER = "_"
# Telegram rejects callback data longer than 64 bytes.
MAX_TOKEN_BYTES = 64

SENT_TEXT = "Successfully sent"
CONFIRM_TEXT = "Revoke the message?"
REVOKED_TEXT = "<b>Revoked</b>"


class ConfirmationState(Enum):
    UNCONFIRMED = ""
    CONFIRMED_NO = "no"
    CONFIRMED_YES = "yes"


@dataclass(frozen=True)
class RevokeToken:
    """Decoded callback token for one relayed message."""

    stanza_id: str
    chat_address: str
    state: ConfirmationState = ConfirmationState.UNCONFIRMED

    def with_state(self, state: ConfirmationState) -> "RevokeToken":
        return RevokeToken(self.stanza_id, self.chat_address, state)


def _check_part(value: str, name: str) -> None:
    if not value:
        raise InvalidInput(f"Empty {name} in revoke token")
    if TOKEN_DELIMITER in value:
        raise InvalidInput(f"{name} {value!r} contains the token delimiter")


def encode_revoke_token(token: RevokeToken) -> str:
    """Serialize a token, rejecting parts that would break decoding."""

    _check_part(token.stanza_id, "stanza id")
    _check_part(token.chat_address, "chat address")
    parts = [TOKEN_PREFIX, token.stanza_id, token.chat_address]
    if token.state is not ConfirmationState.UNCONFIRMED:
        parts.append(token.state.value)
    encoded = TOKEN_DELIMITER.join(parts)
    if len(encoded.encode("utf-8")) > MAX_TOKEN_BYTES:
        raise InvalidInput(f"Revoke token for {token.stanza_id} exceeds {MAX_TOKEN_BYTES} bytes")
    return encoded


def decode_revoke_token(raw: str) -> RevokeToken:
    """Parse one of the three token shapes; anything else raises InvalidInput."""

    parts = (raw or "").split(TOKEN_DELIMITER)
    if len(parts) == 3:
        prefix, stanza_id, chat_address = parts
        state = ConfirmationState.UNCONFIRMED
    elif len(parts) == 4:
        prefix, stanza_id, chat_address, tag = parts
        if tag == ConfirmationState.CONFIRMED_NO.value:
            state = ConfirmationState.CONFIRMED_NO
        elif tag == ConfirmationState.CONFIRMED_YES.value:
            state = ConfirmationState.CONFIRMED_YES
        else:
            raise InvalidInput(f"Unknown confirmation tag in {raw!r}")
    else:
        raise InvalidInput(f"Unrecognized revoke token {raw!r}")

    if prefix != TOKEN_PREFIX or not stanza_id or not chat_address:
        raise InvalidInput(f"Unrecognized revoke token {raw!r}")
    return RevokeToken(stanza_id=stanza_id, chat_address=chat_address, state=state)


def revoke_keyboard(stanza_id: str, chat_address: str, confirm: bool) -> Controls:
    """Return the inline control rows for a relayed message.

    Raises InvalidInput when any state of the token exceeds the callback limit.
    """

    token = RevokeToken(stanza_id, chat_address)
    yes = ControlButton("Yes", encode_revoke_token(token.with_state(ConfirmationState.CONFIRMED_YES)))
    if not confirm:
        return [[ControlButton("Revoke", encode_revoke_token(token))]]
    return [[yes, ControlButton("No", encode_revoke_token(token.with_state(ConfirmationState.CONFIRMED_NO)))]]


class RevokeWorkflow:
    """Drive revokes from the /revoke command and from inline controls."""

    def __init__(self, store: CorrelationStorePort, peer: PeerPort, hub: HubPort) -> None:
        self._store = store
        self._peer = peer
        self._hub = hub

    async def revoke_by_reply(self, conversation_id: int, message_id: int, thread_id: int) -> None:
        """Revoke the WhatsApp copy of a hub message.

        The pair stays in place: a repeated revoke is rejected by WhatsApp,
        not by us.
        """

        pair = self._store.get_peer_from_hub_message(conversation_id, message_id, thread_id)
        if pair is None:
            raise NotFound(
                f"No pair recorded for hub message {message_id}",
                user_message="No WhatsApp message is paired with the replied message",
            )
        await self._send_revoke(pair.peer_chat_address, pair.peer_stanza_id)
        LOGGER.info("Revoked %s in %s", pair.peer_stanza_id, pair.peer_chat_address)

    async def handle_interaction(self, interaction: HubInteraction) -> None:
        """Advance the confirmation state machine for one button press."""

        try:
            token = decode_revoke_token(interaction.data)
            confirm_controls = revoke_keyboard(token.stanza_id, token.chat_address, confirm=True)
        except InvalidInput:
            LOGGER.info("Rejected interaction data %r", interaction.data)
            await self._hub.answer_interaction(interaction, "Invalid interaction", alert=True)
            return

        if token.state is ConfirmationState.UNCONFIRMED:
            await self._hub.edit_control(
                interaction.conversation_id,
                interaction.message_id,
                CONFIRM_TEXT,
                confirm_controls,
            )
            await self._hub.answer_interaction(interaction, "Are you sure?")
            return

        if token.state is ConfirmationState.CONFIRMED_NO:
            await self._hub.edit_control(
                interaction.conversation_id,
                interaction.message_id,
                SENT_TEXT,
                revoke_keyboard(token.stanza_id, token.chat_address, confirm=False),
            )
            await self._hub.answer_interaction(interaction, "Aborted", alert=True)
            return

        try:
            await self._send_revoke(token.chat_address, token.stanza_id)
        except CollaboratorFailure as exc:
            LOGGER.warning("Revoke of %s failed: %s", token.stanza_id, exc)
            await self._hub.answer_interaction(
                interaction, f"Failed to send revoke message: {exc}", alert=True
            )
            return

        # The control is a reply to the relayed message; that is the pair to drop.
        target = interaction.target_message_id or interaction.message_id
        removed = self._store.delete_message_id_pair(interaction.conversation_id, target)
        LOGGER.info("Revoked %s, removed %s pair(s)", token.stanza_id, removed)

        await self._hub.answer_interaction(interaction, "Successfully revoked", alert=True)
        await self._hub.edit_control(interaction.conversation_id, interaction.message_id, REVOKED_TEXT, [])

    async def _send_revoke(self, chat_address: str, stanza_id: str) -> None:
        try:
            await self._peer.send_revoke(chat_address, stanza_id)
        except CollaboratorFailure:
            raise
        except Exception as exc:
            raise CollaboratorFailure(str(exc), user_message="Failed to revoke message") from exc
