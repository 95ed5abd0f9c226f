"""Helpers for working with WhatsApp addresses (JIDs).

Everything here is pure: parsing never touches the network, and an address
that cannot be canonicalized is rejected instead of being passed on half-parsed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

USER_SERVER = "s.whatsapp.net"
LEGACY_USER_SERVER = "c.us"
GROUP_SERVER = "g.us"
BROADCAST_SERVER = "broadcast"
HIDDEN_USER_SERVER = "lid"
NEWSLETTER_SERVER = "newsletter"

STATUS_BROADCAST = f"status@{BROADCAST_SERVER}"

_KNOWN_SERVERS = {
    USER_SERVER,
    GROUP_SERVER,
    BROADCAST_SERVER,
    HIDDEN_USER_SERVER,
    NEWSLETTER_SERVER,
}

_PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
_DIGITS_RE = re.compile(r"^\d+$")
_GROUP_USER_RE = re.compile(r"^\d+(-\d+)?$")
_BROADCAST_USER_RE = re.compile(r"^[\w.]+$")


@dataclass(frozen=True)
class PeerAddress:
    """Canonical WhatsApp address split into its parts."""

    user: str
    server: str
    agent: int = 0
    device: int = 0

    def to_non_device(self) -> "PeerAddress":
        return PeerAddress(user=self.user, server=self.server)

    def __str__(self) -> str:
        if self.agent or self.device:
            agent = f".{self.agent}" if self.agent else ""
            return f"{self.user}{agent}:{self.device}@{self.server}"
        return f"{self.user}@{self.server}"


def _split_user(raw_user: str) -> Optional[Tuple[str, int, int]]:
    """Split ``user[.agent][:device]`` into its three parts."""

    user, _, device_part = raw_user.partition(":")
    device = 0
    if device_part:
        if not _DIGITS_RE.match(device_part):
            return None
        device = int(device_part)

    agent = 0
    if "." in user:
        user, _, agent_part = user.partition(".")
        if not _DIGITS_RE.match(agent_part):
            return None
        agent = int(agent_part)
    return user, agent, device


def parse_address(raw: str) -> Tuple[Optional[PeerAddress], bool]:
    """Validate and canonicalize a WhatsApp address.

    Accepted forms:
    - ``user@server`` with an optional ``.agent`` and ``:device`` on the user
    - a bare phone number (``+62 812-3``), mapped to the default user server
    - the legacy ``c.us`` server, rewritten to ``s.whatsapp.net``

    Returns ``(address, True)`` on success and ``(None, False)`` otherwise.
    """

    text = (raw or "").strip()
    if not text:
        return None, False

    if "@" not in text:
        if not _PHONE_RE.match(text):
            return None, False
        digits = re.sub(r"\D", "", text)
        if not digits:
            return None, False
        return PeerAddress(user=digits, server=USER_SERVER), True

    raw_user, _, server = text.partition("@")
    server = server.lower()
    if "@" in server or not raw_user:
        return None, False
    if server == LEGACY_USER_SERVER:
        server = USER_SERVER
    if server not in _KNOWN_SERVERS:
        return None, False

    if server == GROUP_SERVER:
        if not _GROUP_USER_RE.match(raw_user):
            return None, False
        return PeerAddress(user=raw_user, server=server), True

    if server == BROADCAST_SERVER:
        if not _BROADCAST_USER_RE.match(raw_user):
            return None, False
        return PeerAddress(user=raw_user, server=server), True

    parts = _split_user(raw_user)
    if parts is None:
        return None, False
    user, agent, device = parts
    if not _DIGITS_RE.match(user):
        return None, False
    return PeerAddress(user=user, server=server, agent=agent, device=device), True


def is_broadcast_channel(address: str) -> bool:
    """Return True for status/broadcast addresses, which have no stable viewer identity."""

    parsed, ok = parse_address(address)
    return ok and parsed.server == BROADCAST_SERVER


def is_group(address: str) -> bool:
    """Return True when the address names a group chat."""

    parsed, ok = parse_address(address)
    return ok and parsed.server == GROUP_SERVER


def normalize_group_participant(address: str) -> str:
    """Strip agent/device suffixes so one person maps to one address.

    Raises ValueError for input that is not an address at all.
    """

    parsed, ok = parse_address(address)
    if not ok:
        raise ValueError(f"Not a WhatsApp address: {address!r}")
    return str(parsed.to_non_device())


def canonical_address(raw: str) -> Optional[str]:
    """Return the canonical string form of ``raw`` or None when invalid."""

    parsed, ok = parse_address(raw)
    if not ok:
        return None
    return str(parsed)
