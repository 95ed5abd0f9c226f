"""Shared HTML formatting helpers for hub replies.

Keeping formatting here prevents drift between handlers and keeps replies
consistent; every reply is sent with Telegram's HTML parse mode.
"""

from __future__ import annotations

import html
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from core.errors import BridgeError, CollaboratorFailure
from core.models import ContactName, GroupInfo

# Telegram caps messages at 4096 characters; stay well below with markup.
CHUNK_CHARS = 1800
ALERT_CHARS = 200


def format_error(exc: BridgeError) -> str:
    """Return the user-facing reply for an expected failure.

    Platform failures include the platform's own message; other errors only
    show their summary so internal identifiers do not leak.
    """

    summary = f"<b>{html.escape(exc.user_message)}</b>"
    if isinstance(exc, CollaboratorFailure):
        return f"{summary}\n\n<code>{html.escape(str(exc))}</code>"
    return summary


def format_alert(exc: BridgeError) -> str:
    """Plain-text variant of format_error for callback answers."""

    text = exc.user_message
    if isinstance(exc, CollaboratorFailure):
        text = f"{text}: {exc}"
    # Callback alerts are limited to 200 characters.
    return text if len(text) <= ALERT_CHARS else text[: ALERT_CHARS - 3] + "..."


def format_unexpected_error(summary: str, exc: Exception) -> str:
    return f"<b>{html.escape(summary)}</b>\n\n<code>{html.escape(type(exc).__name__)}</code>"


def format_uptime(started_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - started_at).total_seconds()), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h{minutes:02d}m{seconds:02d}s"


def format_start(started_at: datetime, version: str, now: Optional[datetime] = None) -> str:
    timestamp = started_at.astimezone().strftime("%H:%M:%S %d-%m-%Y")
    lines = [
        "<b>Hello, Bot is Up &amp; Running!</b>",
        f" • <b>Up Since</b>: {html.escape(timestamp)}",
        f" • <b>Uptime Total</b>: {format_uptime(started_at, now)}",
        f" • <b>Bot Version</b>: <code>{html.escape(version)}</code>",
    ]
    return "\n".join(lines)


def format_help(commands: Iterable[tuple[str, str]]) -> str:
    lines = ["<b>Here are the available commands:</b>"]
    for name, description in commands:
        lines.append(f" • <code>/{html.escape(name)}</code>: {html.escape(description)}")
    return "\n".join(lines)


def chunk_lines(lines: Sequence[str], limit: int = CHUNK_CHARS) -> list[str]:
    """Join lines into messages no longer than ``limit`` characters each."""

    chunks: list[str] = []
    current = ""
    for line in lines:
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def format_groups(groups: Sequence[GroupInfo]) -> list[str]:
    lines = [
        f"{index}. {html.escape(group.name)} [<code>{html.escape(group.address)}</code>]"
        for index, group in enumerate(groups, start=1)
    ]
    return chunk_lines(lines)


def format_contacts(contacts: Sequence[ContactName]) -> list[str]:
    header = f"<b>Here are the {len(contacts)} matching contacts:</b>"
    lines = [header] + [
        f" • <b>{html.escape(contact.display_name)}</b> [<code>{html.escape(contact.peer_address)}</code>]"
        for contact in contacts
    ]
    return chunk_lines(lines)


def format_usage(usage: str, example: str = "") -> str:
    text = f"Usage: <code>{html.escape(usage)}</code>"
    if example:
        text += f"\nExample: <code>{html.escape(example)}</code>"
    return text
