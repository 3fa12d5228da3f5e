import json

import pytest

from pipeline_studio.config import ClientStateConfig
from pipeline_studio.domain.errors import ConfigurationError
from pipeline_studio.infrastructure.state_store import ClientStateStore


def test_memory_store():
    store = ClientStateStore()
    assert store.get("corsProxyUrl") is None
    store.set("corsProxyUrl", "https://cors.test/")
    store.set_bool("useCorsProxy", True)
    assert store.get("corsProxyUrl") == "https://cors.test/"
    assert store.get_bool("useCorsProxy") is True
    assert store.snapshot() == {"corsProxyUrl": "https://cors.test/", "useCorsProxy": "true"}


def test_booleans_are_strings():
    store = ClientStateStore()
    store.set_bool("isAuthenticated", False)
    assert store.get("isAuthenticated") == "false"
    assert store.get_bool("isAuthenticated") is False


def test_values_survive_restart(tmp_path):
    config = ClientStateConfig(state_file=str(tmp_path / "state.json"))
    store = ClientStateStore(config)
    store.set("corsProxyUrl", "https://cors.test/")
    store.set_bool("isAuthenticated", True)

    reopened = ClientStateStore(config)
    assert reopened.get("corsProxyUrl") == "https://cors.test/"
    assert reopened.get_bool("isAuthenticated") is True


def test_remove_persists(tmp_path):
    path = tmp_path / "state.json"
    store = ClientStateStore(ClientStateConfig(state_file=str(path)))
    store.set("isAuthenticated", "true")
    store.remove("isAuthenticated")
    store.remove("never-set")

    assert json.loads(path.read_text()) == {}


def test_unreadable_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{broken")
    with pytest.raises(ConfigurationError):
        ClientStateStore(ClientStateConfig(state_file=str(path)))


def test_file_must_hold_object(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[]")
    with pytest.raises(ConfigurationError) as exc_info:
        ClientStateStore(ClientStateConfig(state_file=str(path)))
    assert exc_info.value.message == "Client state file must contain a JSON object"
