"""WhatsApp adapter loading.

The WhatsApp client library is an external collaborator; the config names a
factory as ``package.module:callable`` which receives the PeerConfig and
returns an object satisfying the core PeerPort.
"""

from __future__ import annotations

import importlib
import logging

from core.config import PeerConfig
from core.ports import PeerPort

LOGGER = logging.getLogger(__name__)

_REQUIRED_METHODS = (
    "has_session",
    "connect",
    "reconnect",
    "pairing_events",
    "set_event_handler",
    "send_message",
    "send_revoke",
    "get_group_info",
    "get_joined_groups",
    "fetch_contacts",
    "get_profile_picture",
    "join_group_with_link",
)


def load_peer_adapter(config: PeerConfig) -> PeerPort:
    """Import the configured factory and build the WhatsApp adapter."""

    module_name, _, attribute = config.adapter.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"peer.adapter must look like 'module:factory', got {config.adapter!r}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attribute, None)
    if factory is None or not callable(factory):
        raise ValueError(f"{config.adapter!r} does not name a callable factory")

    adapter = factory(config)
    missing = [name for name in _REQUIRED_METHODS if not hasattr(adapter, name)]
    if missing:
        raise TypeError(f"WhatsApp adapter from {config.adapter!r} lacks: {', '.join(missing)}")

    LOGGER.info("Loaded WhatsApp adapter %s", config.adapter)
    return adapter
