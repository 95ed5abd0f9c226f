from __future__ import annotations

import pytest

from adapters.peer_loader import load_peer_adapter
from core.config import PeerConfig
from fakes import FakePeer


def build_incomplete(config: PeerConfig) -> object:
    return object()


def test_loads_configured_factory() -> None:
    assert isinstance(load_peer_adapter(PeerConfig(adapter="fakes:build_peer")), FakePeer)


@pytest.mark.parametrize("adapter", ["fakes", "fakes:", "fakes:CONVERSATION", "fakes:missing"])
def test_rejects_bad_factory_reference(adapter: str) -> None:
    with pytest.raises(ValueError):
        load_peer_adapter(PeerConfig(adapter=adapter))


def test_rejects_adapter_without_peer_methods() -> None:
    with pytest.raises(TypeError, match="has_session"):
        load_peer_adapter(PeerConfig(adapter="test_peer_loader:build_incomplete"))


def test_missing_module_propagates() -> None:
    with pytest.raises(ModuleNotFoundError):
        load_peer_adapter(PeerConfig(adapter="no_such_bridge_module:build"))
