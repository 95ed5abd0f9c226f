from __future__ import annotations

import asyncio

import get_session
from core.bootstrap import ADMIN_PAIRING_NOTICE
from fakes import OWN_ADDRESS, FakeHub, FakePeer


def test_authorize_prints_code_and_notifies_owner(monkeypatch) -> None:
    printed: list[str] = []
    monkeypatch.setattr(get_session, "_print_qr", printed.append)
    hub = FakeHub()

    session = asyncio.run(get_session.authorize(FakePeer(session=False), hub, owner_id=42))

    assert session.own_address == OWN_ADDRESS
    assert printed == ["code-1"]
    assert hub.sent[0]["conversation_id"] == 42
    assert hub.sent[0]["text"] == ADMIN_PAIRING_NOTICE


def test_authorize_with_stored_session_skips_qr(monkeypatch) -> None:
    printed: list[str] = []
    monkeypatch.setattr(get_session, "_print_qr", printed.append)
    hub = FakeHub()

    session = asyncio.run(get_session.authorize(FakePeer(), hub, owner_id=42))

    assert not session.paired
    assert printed == []
    assert hub.sent == []
