from __future__ import annotations

import asyncio

import pytest

from core.bootstrap import (
    ADMIN_PAIRING_NOTICE,
    PairingCode,
    PairingFailure,
    PairingSuccess,
    PairingTimeout,
    bootstrap_session,
)
from core.errors import CollaboratorFailure
from fakes import OWN_ADDRESS, FakePeer


class Recorder:
    def __init__(self, fail_notify: bool = False) -> None:
        self.codes: list[str] = []
        self.notices: list[str] = []
        self.fail_notify = fail_notify

    def on_code(self, code: str) -> None:
        self.codes.append(code)

    async def notify_admin(self, text: str) -> None:
        if self.fail_notify:
            raise RuntimeError("telegram is down")
        self.notices.append(text)


def test_existing_session_connects_without_pairing() -> None:
    peer = FakePeer(session=True)
    recorder = Recorder()

    ready = asyncio.run(bootstrap_session(peer, recorder.on_code, recorder.notify_admin))

    assert ready.own_address == OWN_ADDRESS
    assert not ready.paired
    assert peer.connected
    assert recorder.codes == []
    assert recorder.notices == []


def test_pairing_shows_codes_until_success() -> None:
    peer = FakePeer(session=False)
    peer.events = [PairingCode("code-1"), PairingTimeout(), PairingCode("code-2"), PairingSuccess(OWN_ADDRESS)]
    recorder = Recorder()

    ready = asyncio.run(bootstrap_session(peer, recorder.on_code, recorder.notify_admin))

    assert ready.paired
    assert ready.own_address == OWN_ADDRESS
    assert recorder.codes == ["code-1", "code-2"]
    assert recorder.notices == [ADMIN_PAIRING_NOTICE, ADMIN_PAIRING_NOTICE]


def test_async_code_callback_is_awaited() -> None:
    peer = FakePeer(session=False)
    shown: list[str] = []

    async def on_code(code: str) -> None:
        shown.append(code)

    asyncio.run(bootstrap_session(peer, on_code, Recorder().notify_admin))

    assert shown == ["code-1"]


def test_failed_admin_notice_still_shows_code() -> None:
    peer = FakePeer(session=False)
    recorder = Recorder(fail_notify=True)

    ready = asyncio.run(bootstrap_session(peer, recorder.on_code, recorder.notify_admin))

    assert ready.paired
    assert recorder.codes == ["code-1"]


def test_pairing_failure_is_fatal() -> None:
    peer = FakePeer(session=False)
    peer.events = [PairingCode("code-1"), PairingFailure("client outdated")]
    recorder = Recorder()

    with pytest.raises(CollaboratorFailure, match="client outdated"):
        asyncio.run(bootstrap_session(peer, recorder.on_code, recorder.notify_admin))


def test_closed_stream_without_session_is_fatal() -> None:
    peer = FakePeer(session=False)
    peer.events = [PairingCode("code-1"), PairingTimeout()]
    recorder = Recorder()

    with pytest.raises(CollaboratorFailure):
        asyncio.run(bootstrap_session(peer, recorder.on_code, recorder.notify_admin))
