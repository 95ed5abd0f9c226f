"""Configuration loading for the bridge.

All user-editable settings (hub chat, WhatsApp options, database, logging)
live in a single JSON file; secrets come from the environment (.env). The file
is parsed once into the frozen dataclasses of ``core.config``.
"""

from __future__ import annotations

import json
import os
from typing import Any, Optional

from core.config import (
    BridgeConfig,
    DatabaseConfig,
    HubConfig,
    PeerConfig,
    PostgresDatabase,
    SqliteDatabase,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default location of the config file; override with --config.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

# Where to store the SQLite database when the config does not say.
DEFAULT_DB_PATH = "bridge.db"


def _load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


def _as_int(section: str, raw: dict, key: str, default: Optional[int] = None) -> int:
    value = raw.get(key, default)
    if value is None:
        raise ValueError(f"{section}.{key} is required")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}") from exc


def parse_database_config(raw: dict[str, Any]) -> DatabaseConfig:
    """Build the database variant, rejecting unknown backends up front."""

    db_type = str(raw.get("type", "sqlite")).strip().lower()
    if db_type in {"sqlite", "sqlite3"}:
        return SqliteDatabase(path=_resolve_path(raw.get("path") or DEFAULT_DB_PATH))
    if db_type in {"postgres", "postgresql"}:
        url = raw.get("url")
        if not url:
            raise ValueError("database.url is required for postgres")
        return PostgresDatabase(url=str(url))
    raise ValueError(f"database.type must be 'sqlite' or 'postgres', got {db_type!r}")


def parse_hub_config(raw: dict[str, Any]) -> HubConfig:
    sudo = raw.get("sudo_user_ids", []) or []
    return HubConfig(
        owner_id=_as_int("hub", raw, "owner_id"),
        target_chat_id=_as_int("hub", raw, "target_chat_id"),
        sudo_user_ids=frozenset(int(user_id) for user_id in sudo),
        topic_sync_delay_seconds=float(raw.get("topic_sync_delay_seconds", 5.0)),
    )


def parse_peer_config(raw: dict[str, Any]) -> PeerConfig:
    adapter = raw.get("adapter")
    if not adapter:
        raise ValueError("peer.adapter is required (module:factory)")
    return PeerConfig(
        adapter=str(adapter),
        session_name=str(raw.get("session_name", "Telegram")),
        ignore_chats=frozenset(raw.get("ignore_chats", []) or []),
        status_ignored_chats=frozenset(raw.get("status_ignored_chats", []) or []),
        skip_status_updates=bool(raw.get("skip_status_updates", False)),
        send_my_messages_from_other_devices=bool(raw.get("send_my_messages_from_other_devices", False)),
        send_revoked_message_updates=bool(raw.get("send_revoked_message_updates", True)),
        options=dict(raw.get("options", {}) or {}),
    )


def build_config(raw: dict[str, Any]) -> BridgeConfig:
    """Validate a raw config mapping into a BridgeConfig."""

    return BridgeConfig(
        hub=parse_hub_config(raw.get("hub", {}) or {}),
        peer=parse_peer_config(raw.get("peer", {}) or {}),
        database=parse_database_config(raw.get("database", {}) or {}),
        logging=dict(raw.get("logging", {}) or {}),
    )


def load_config(path: Optional[str] = None) -> BridgeConfig:
    return build_config(_load_json_config(path or CONFIG_PATH))
