from __future__ import annotations

import json
import os

import pytest

import settings
from core.config import PostgresDatabase, SqliteDatabase


def _raw(**database) -> dict:
    return {
        "hub": {"owner_id": "42", "target_chat_id": -100555, "sudo_user_ids": [7, "8"]},
        "peer": {"adapter": "fakes:build_peer", "ignore_chats": ["123@g.us"]},
        "database": database,
    }


def test_build_config_defaults() -> None:
    config = settings.build_config(_raw())

    assert config.hub.owner_id == 42
    assert config.hub.sudo_user_ids == frozenset({7, 8})
    assert config.hub.topic_sync_delay_seconds == 5.0
    assert config.peer.ignore_chats == frozenset({"123@g.us"})
    assert config.peer.send_revoked_message_updates
    assert not config.peer.skip_status_updates
    assert config.database == SqliteDatabase(path=os.path.join(settings.PROJECT_ROOT, "bridge.db"))


def test_sqlite_absolute_path_is_kept(tmp_path) -> None:
    path = str(tmp_path / "store.db")

    assert settings.build_config(_raw(type="sqlite3", path=path)).database == SqliteDatabase(path=path)


def test_postgres_requires_url() -> None:
    config = settings.build_config(_raw(type="postgres", url="postgresql://bridge@localhost/bridge"))
    assert config.database == PostgresDatabase(url="postgresql://bridge@localhost/bridge")

    with pytest.raises(ValueError, match="database.url"):
        settings.build_config(_raw(type="postgresql"))


def test_unknown_database_type_is_rejected() -> None:
    with pytest.raises(ValueError, match="sqlite"):
        settings.build_config(_raw(type="mysql"))


def test_required_fields() -> None:
    raw = _raw()
    del raw["peer"]["adapter"]
    with pytest.raises(ValueError, match="peer.adapter"):
        settings.build_config(raw)

    raw = _raw()
    raw["hub"]["target_chat_id"] = "not a number"
    with pytest.raises(ValueError, match="hub.target_chat_id"):
        settings.build_config(raw)


def test_load_config_reads_json(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(_raw()), encoding="utf-8")

    assert settings.load_config(str(path)).hub.target_chat_id == -100555

    with pytest.raises(FileNotFoundError):
        settings.load_config(str(tmp_path / "missing.json"))
