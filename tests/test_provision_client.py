"""
Tests for the client provisioning script
"""

import pytest

from mascote.core.auth import verify_secret
from mascote.core.config import get_settings
from mascote.models.client import Client
from mascote.scripts.provision_client import main, provision_client
from mascote.services.client_store import ClientRecordStore


@pytest.fixture
def store(tmp_path):
    store = ClientRecordStore(tmp_path / "clients.json")
    store.initialize()
    return store


@pytest.fixture
def env_settings(tmp_path, monkeypatch):
    """Point the cached settings at a temporary data directory"""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


def test_new_client(store):
    client = provision_client(store, "5511999990000", secret="abc", display_name="EC Exemplo", plan_quota=4)

    stored = store.get("5511999990000")
    assert stored == client
    assert stored.plan_quota == 4
    assert stored.usage_count == 0
    assert stored.active is True
    assert verify_secret("abc", stored.credential_hash)


def test_update_preserves_usage(store):
    store.provision("5511999990000", Client(
        credential_hash="old", plan_quota=2, usage_count=2, cycle_key="2024-06",
    ))

    provision_client(store, "5511999990000", plan_quota=5, active=False)

    stored = store.get("5511999990000")
    assert stored.plan_quota == 5
    assert stored.active is False
    assert stored.usage_count == 2
    assert stored.cycle_key == "2024-06"
    assert stored.credential_hash == "old"


def test_new_client_requires_secret(store):
    with pytest.raises(ValueError):
        provision_client(store, "5511999990000")
    assert store.load() == {}


def test_invalid_client_id(store):
    with pytest.raises(ValueError):
        provision_client(store, "../etc", secret="abc")


def test_invalid_quota_is_rejected(store):
    with pytest.raises(ValueError):
        provision_client(store, "5511999990000", secret="abc", plan_quota=0)
    assert store.load() == {}


def test_main(env_settings):
    code = main(["5511999990000", "--name", "EC Exemplo", "--quota", "3", "--secret", "abc"])

    assert code == 0
    stored = ClientRecordStore(env_settings.clients_file).get("5511999990000")
    assert stored.display_name == "EC Exemplo"
    assert stored.plan_quota == 3

    assert main(["5511999990000", "--deactivate"]) == 0
    assert ClientRecordStore(env_settings.clients_file).get("5511999990000").active is False


def test_main_reports_failure(env_settings):
    assert main(["bad/id", "--secret", "abc"]) == 1


def test_invalid_update_leaves_record_untouched(store):
    store.provision("5511999990000", Client(credential_hash="old", plan_quota=2, usage_count=1))

    with pytest.raises(ValueError):
        provision_client(store, "5511999990000", plan_quota=0)

    stored = store.get("5511999990000")
    assert stored.plan_quota == 2
    assert stored.usage_count == 1
