"""WhatsApp session bootstrap glue.

Renders pairing codes as a terminal QR code and pings the owner through the
bot so they know to look at the terminal.
"""

from __future__ import annotations

import logging

import qrcode

from core.bootstrap import SessionReady, bootstrap_session
from core.ports import HubPort, PeerPort

LOGGER = logging.getLogger(__name__)


def _print_qr(code: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(code)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


async def authorize(peer: PeerPort, hub: HubPort, owner_id: int) -> SessionReady:
    """Connect the WhatsApp adapter, pairing interactively when needed."""

    async def notify_owner(text: str) -> None:
        await hub.send_text(owner_id, 0, text)

    session = await bootstrap_session(peer, on_code=_print_qr, notify_admin=notify_owner)
    LOGGER.info("WhatsApp session ready as %s", session.own_address)
    return session
