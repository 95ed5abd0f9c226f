"""Application entry point for the Telegram <-> WhatsApp bridge."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.peer_loader import load_peer_adapter
from adapters.sqlite_storage import SQLiteCorrelationStore
from adapters.telegram_handlers import register_handlers
from adapters.telegram_hub import TelegramHub
from client import bot_token, build_client
from core.commands import BridgeCommands
from core.config import BridgeConfig, DatabaseConfig, PostgresDatabase, SqliteDatabase
from core.context import BridgeContext
from core.ports import CorrelationStorePort
from core.relay import BridgeRelay
from core.revoke import RevokeWorkflow
from core.routing import RoutingResolver
from get_session import authorize

NAME = "TGWA BRIDGE"
FONT = "tarty-1"

# Secrets that are always masked in log output.
_DEFAULT_REDACTED_ENV = ("BOT_TOKEN", "API_HASH")


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    names = set(_DEFAULT_REDACTED_ENV)
    if redact_cfg.get("enabled", True):
        names.update(redact_cfg.get("patterns", []))
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    config = config or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tgwabridge.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO; keep it to warnings unless debugging.
    if level > logging.DEBUG:
        logging.getLogger("telethon").setLevel(logging.WARNING)


def open_store(database: DatabaseConfig) -> CorrelationStorePort:
    """Build the correlation store for the configured backend."""

    if isinstance(database, SqliteDatabase):
        return SQLiteCorrelationStore(database.path)
    if isinstance(database, PostgresDatabase):
        # Imported lazily so SQLite installs do not need SQLAlchemy.
        from adapters.postgres_storage import PostgresCorrelationStore

        return PostgresCorrelationStore(database.url)
    raise TypeError(f"Unsupported database config: {database!r}")


def _load(config_path: Optional[str]) -> BridgeConfig:
    config = settings.load_config(config_path)
    _configure_logging(config.logging)
    return config


def _run(config_path: Optional[str]) -> None:
    _print_banner()
    config = _load(config_path)
    logger = logging.getLogger(__name__)

    logger.info("Starting bridge")

    store = open_store(config.database)
    store.init_db()

    client = build_client()
    client.loop.run_until_complete(client.start(bot_token=bot_token()))
    hub = TelegramHub(client)

    # The WhatsApp session must be ready before any handler is registered.
    peer = load_peer_adapter(config.peer)
    session = client.loop.run_until_complete(authorize(peer, hub, config.hub.owner_id))

    context = BridgeContext(config=config, store=store, hub=hub, peer=peer)
    resolver = RoutingResolver(store, session.own_address)
    relay = BridgeRelay(context, resolver)
    workflow = RevokeWorkflow(store, peer, hub)
    commands = BridgeCommands(context, workflow, relay)

    peer.set_event_handler(relay.handle_peer_event)
    register_handlers(client, context, relay, commands, workflow)

    logger.info("Bridge connected. Listening in chat %s...", config.hub.target_chat_id)
    client.run_until_disconnected()


def _groups(config_path: Optional[str]) -> None:
    _print_banner()
    config = _load(config_path)

    client = build_client()

    async def _run_groups() -> None:
        await client.start(bot_token=bot_token())
        peer = load_peer_adapter(config.peer)
        await authorize(peer, TelegramHub(client), config.hub.owner_id)
        groups = await peer.get_joined_groups()
        if not groups:
            print("No WhatsApp groups joined.")
        for index, group in enumerate(sorted(groups, key=lambda g: g.name.lower()), start=1):
            print(f"{index}. {group.name} | {group.address}")
        await client.disconnect()

    client.loop.run_until_complete(_run_groups())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tgwabridge")
    parser.add_argument("--config", help="Path to config.json", default=None)
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bridge")
    subparsers.add_parser("groups", help="List joined WhatsApp groups with their IDs")

    args = parser.parse_args(argv)
    if args.command == "groups":
        _groups(args.config)
        return
    _run(args.config)


if __name__ == "__main__":
    main()
