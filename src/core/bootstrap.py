"""One-shot WhatsApp session bootstrap.

Runs before any handler is registered. An existing device session connects
directly; otherwise the pairing stream is consumed until it reports success,
failure, or closes.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from core.errors import CollaboratorFailure
from core.ports import PeerPort

LOGGER = logging.getLogger(__name__)

ADMIN_PAIRING_NOTICE = "Please check your terminal and scan the QR code to login to WhatsApp"


@dataclass(frozen=True)
class PairingCode:
    """A fresh code to render (QR payload)."""

    code: str


@dataclass(frozen=True)
class PairingSuccess:
    address: str = ""


@dataclass(frozen=True)
class PairingFailure:
    reason: str


@dataclass(frozen=True)
class PairingTimeout:
    """The last code expired without being scanned."""


PairingEvent = Union[PairingCode, PairingSuccess, PairingFailure, PairingTimeout]


@dataclass(frozen=True)
class SessionReady:
    """Outcome both bootstrap paths converge on."""

    own_address: str
    paired: bool


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


async def bootstrap_session(
    peer: PeerPort,
    on_code: Callable[[str], Union[None, Awaitable[None]]],
    notify_admin: Callable[[str], Awaitable[None]],
) -> SessionReady:
    """Obtain an authenticated WhatsApp session.

    ``notify_admin`` is best-effort: a failed notification is logged and the
    code is still shown locally through ``on_code``.
    """

    if await peer.has_session():
        try:
            await peer.connect()
        except CollaboratorFailure:
            raise
        except Exception as exc:
            raise CollaboratorFailure(f"Could not connect to WhatsApp: {exc}") from exc
        LOGGER.info("Connected to WhatsApp with stored session as %s", peer.own_address)
        return SessionReady(own_address=peer.own_address, paired=False)

    # The stream has to exist before connecting, or the first code is missed.
    events = peer.pairing_events()
    try:
        await peer.connect()
    except Exception as exc:
        raise CollaboratorFailure(f"Could not connect to WhatsApp for login: {exc}") from exc

    async for event in events:
        if isinstance(event, PairingCode):
            try:
                await notify_admin(ADMIN_PAIRING_NOTICE)
            except Exception:
                LOGGER.warning("Failed to notify the owner about a pairing code", exc_info=True)
            await _maybe_await(on_code(event.code))
        elif isinstance(event, PairingSuccess):
            address = event.address or peer.own_address
            LOGGER.info("Successfully logged into WhatsApp as %s", address)
            return SessionReady(own_address=address, paired=True)
        elif isinstance(event, PairingFailure):
            raise CollaboratorFailure(f"WhatsApp pairing failed: {event.reason}")
        else:
            LOGGER.info("Received WhatsApp login event %s", type(event).__name__)

    if peer.own_address:
        LOGGER.info("Pairing stream closed with an active session as %s", peer.own_address)
        return SessionReady(own_address=peer.own_address, paired=True)
    raise CollaboratorFailure("Pairing stream closed before a session was established")
