"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class SqliteDatabase:
    """Correlation store kept in a local SQLite file."""

    path: str


@dataclass(frozen=True)
class PostgresDatabase:
    """Correlation store kept in a Postgres database (SQLAlchemy URL)."""

    url: str


DatabaseConfig = Union[SqliteDatabase, PostgresDatabase]


@dataclass(frozen=True)
class HubConfig:
    """Telegram side settings: who may command the bot and where it bridges."""

    owner_id: int
    target_chat_id: int
    sudo_user_ids: frozenset[int] = frozenset()
    topic_sync_delay_seconds: float = 5.0


@dataclass(frozen=True)
class PeerConfig:
    """WhatsApp side settings consumed by the relay and the adapter loader."""

    adapter: str
    session_name: str = "Telegram"
    ignore_chats: frozenset[str] = frozenset()
    status_ignored_chats: frozenset[str] = frozenset()
    skip_status_updates: bool = False
    send_my_messages_from_other_devices: bool = False
    send_revoked_message_updates: bool = True
    options: dict = field(default_factory=dict)


@dataclass(frozen=True)
class BridgeConfig:
    """Fully validated bridge configuration."""

    hub: HubConfig
    peer: PeerConfig
    database: DatabaseConfig
    logging: dict = field(default_factory=dict)
