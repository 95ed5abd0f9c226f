"""Telethon client for the bridge bot.

The client signs in with BOT_TOKEN rather than a user login. app.py starts
it on the client's own event loop and runs the WhatsApp pairing on that same
loop, so both platforms share one asyncio loop for the life of the process.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client() -> TelegramClient:
    """Create the bot's Telethon client from API_ID, API_HASH and SESSION_NAME.

    The client is returned unstarted; pass bot_token() to client.start().
    The bot session is stored as "tgwabridge.session" unless SESSION_NAME
    says otherwise.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "tgwabridge")

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram bot client")

    return TelegramClient(session_name, int(api_id), api_hash)


def bot_token() -> str:
    """Return the bot token, failing fast when it is missing."""

    load_dotenv()
    token = os.getenv("BOT_TOKEN")
    if not token:
        raise RuntimeError("BOT_TOKEN is required in environment")
    return token
