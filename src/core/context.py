"""Explicit bridge context built once at startup."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from core.config import BridgeConfig
from core.ports import CorrelationStorePort, HubPort, PeerPort


@dataclass
class BridgeContext:
    """Everything a handler needs, passed by reference instead of globals."""

    config: BridgeConfig
    store: CorrelationStorePort
    hub: HubPort
    peer: PeerPort
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def conversation_id(self) -> int:
        return self.config.hub.target_chat_id
