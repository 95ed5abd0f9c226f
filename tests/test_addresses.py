from __future__ import annotations

import pytest

from core.addresses import (
    BROADCAST_SERVER,
    GROUP_SERVER,
    USER_SERVER,
    PeerAddress,
    canonical_address,
    is_broadcast_channel,
    is_group,
    normalize_group_participant,
    parse_address,
)


def test_parse_user_address_with_device() -> None:
    address, ok = parse_address("628123:12@s.whatsapp.net")

    assert ok
    assert address == PeerAddress(user="628123", server=USER_SERVER, device=12)
    assert str(address) == "628123:12@s.whatsapp.net"
    assert str(address.to_non_device()) == "628123@s.whatsapp.net"


def test_parse_user_address_with_agent_and_device() -> None:
    address, ok = parse_address("628123.1:3@s.whatsapp.net")

    assert ok
    assert (address.agent, address.device) == (1, 3)
    assert str(address) == "628123.1:3@s.whatsapp.net"


def test_bare_phone_number_maps_to_user_server() -> None:
    address, ok = parse_address("+62 812-345")

    assert ok
    assert str(address) == "62812345@s.whatsapp.net"


def test_legacy_server_is_rewritten() -> None:
    assert canonical_address("62812@c.us") == "62812@s.whatsapp.net"


def test_group_and_broadcast_addresses() -> None:
    group, ok = parse_address("120363025246125888@g.us")
    assert ok and group.server == GROUP_SERVER

    legacy_group, ok = parse_address("6281234-1600000000@g.us")
    assert ok and legacy_group.user == "6281234-1600000000"

    status, ok = parse_address("status@broadcast")
    assert ok and status.server == BROADCAST_SERVER

    assert is_group("120363025246125888@g.us")
    assert not is_group("62812@s.whatsapp.net")
    assert is_broadcast_channel("status@broadcast")
    assert not is_broadcast_channel("120363025246125888@g.us")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "hello",
        "abc@s.whatsapp.net",
        "628@unknown.server",
        "a@b@g.us",
        "group@g.us",
        "@s.whatsapp.net",
        "628:x@s.whatsapp.net",
    ],
)
def test_invalid_addresses_are_rejected(raw: str) -> None:
    assert parse_address(raw) == (None, False)
    assert canonical_address(raw) is None


def test_normalize_group_participant_strips_device() -> None:
    assert normalize_group_participant("628123:7@s.whatsapp.net") == "628123@s.whatsapp.net"
    assert normalize_group_participant("628123@s.whatsapp.net") == "628123@s.whatsapp.net"


def test_normalize_group_participant_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        normalize_group_participant("not an address")
