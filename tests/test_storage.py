import asyncio

import pytest

from fakes import FakeTransport, MemoryKeyValueStore, channel, coordinator_transport
from proxy_switcher.gui.messaging import TransportError
from proxy_switcher.gui.models import ProxyMode
from proxy_switcher.gui.storage import (
    ChannelKeyValueStore,
    JsonFileKeyValueStore,
    Storage,
    StorageCorruptedError,
    StorageError,
)


def _load(values: dict) -> Storage:
    storage = Storage(MemoryKeyValueStore(values))
    asyncio.run(storage.load())
    return storage


def test_load_from_empty_store_keeps_defaults():
    settings = _load({}).settings

    assert settings.enabled is ProxyMode.ON
    assert settings.show_china_option is False
    assert settings.polyjuice_country == ""
    assert settings.extra_pac_params == ""
    assert settings.break_proxy is False


def test_load_decodes_stored_values():
    settings = _load(
        {
            "ENABLED": "C",
            "SHOW_CHINA_PROXY": "T",
            "SELECTED_COUNTRY": "FR",
            "EXTRA_PAC_PARAMS": "region=eu",
            "BREAK_PROXY": "T",
        }
    ).settings

    assert settings.enabled is ProxyMode.CHINA
    assert settings.show_china_option is True
    assert settings.polyjuice_country == "FR"
    assert settings.extra_pac_params == "region=eu"
    assert settings.break_proxy is True


@pytest.mark.parametrize("token", ["X", "", "on", "B"])
def test_load_ignores_unknown_or_read_only_mode(token):
    assert _load({"ENABLED": token}).settings.enabled is ProxyMode.ON


@pytest.mark.parametrize("token", ["true", "1", "t", True])
def test_only_sentinel_token_reads_as_true(token):
    assert _load({"SHOW_CHINA_PROXY": token}).settings.show_china_option is False


def test_load_propagates_transport_failure():
    def fail(_):
        raise ConnectionRefusedError("coordinator down")

    storage = Storage(ChannelKeyValueStore(channel(FakeTransport({"READ_LOCAL_STORAGE": fail}))))

    with pytest.raises(TransportError):
        asyncio.run(storage.load())


def test_set_updates_cache_and_encodes_for_store():
    backend = MemoryKeyValueStore()
    storage = Storage(backend)

    async def scenario():
        await storage.set(
            {"enabled": ProxyMode.SYSTEM, "show_china_option": True, "pac_version": 3}
        )

    asyncio.run(scenario())

    assert storage.settings.enabled is ProxyMode.SYSTEM
    assert storage.settings.show_china_option is True
    assert backend.writes == [{"ENABLED": "S", "SHOW_CHINA_PROXY": "T", "pac_version": 3}]


def test_set_false_boolean_clears_sentinel():
    backend = MemoryKeyValueStore({"SHOW_CHINA_PROXY": "T"})
    storage = Storage(backend)

    async def scenario():
        await storage.load()
        await storage.set({"show_china_option": False})
        await Storage(backend).load()

    asyncio.run(scenario())

    assert backend.values["SHOW_CHINA_PROXY"] == ""
    assert storage.settings.show_china_option is False


def test_set_rejects_unknown_mode():
    storage = Storage(MemoryKeyValueStore())

    with pytest.raises(ValueError):
        storage.set({"enabled": "Q"})


def test_rejected_set_leaves_cache_untouched():
    backend = MemoryKeyValueStore()
    storage = Storage(backend)

    with pytest.raises(ValueError):
        storage.set({"polyjuice_country": "DE", "break_proxy": True, "enabled": "Q"})

    assert storage.settings.polyjuice_country == ""
    assert storage.settings.break_proxy is False
    assert backend.writes == []


def test_set_write_failure_is_logged_not_raised(caplog):
    def fail(_):
        raise ConnectionRefusedError("coordinator down")

    storage = Storage(ChannelKeyValueStore(channel(FakeTransport({"WRITE_LOCAL_STORAGE": fail}))))

    async def scenario():
        await storage.set({"polyjuice_country": "DE"})

    asyncio.run(scenario())

    # No rollback
    assert storage.settings.polyjuice_country == "DE"
    assert "Failed to persist settings" in caplog.text


def test_round_trip_through_json_file(tmp_path):
    path = tmp_path / "settings" / "settings.json"

    async def scenario():
        await Storage(JsonFileKeyValueStore(path)).set({"enabled": "C"})
        fresh = Storage(JsonFileKeyValueStore(path))
        await fresh.load()
        return fresh.settings.enabled

    assert asyncio.run(scenario()) is ProxyMode.CHINA


def test_round_trip_through_coordinator_store():
    store: dict = {}

    async def scenario():
        await Storage(ChannelKeyValueStore(channel(coordinator_transport(store)))).set(
            {"enabled": "C", "polyjuice_country": "FR"}
        )
        fresh = Storage(ChannelKeyValueStore(channel(coordinator_transport(store))))
        return await fresh.load()

    settings = asyncio.run(scenario())

    assert store == {"ENABLED": "C", "SELECTED_COUNTRY": "FR"}
    assert settings.enabled is ProxyMode.CHINA
    assert settings.polyjuice_country == "FR"


def test_json_file_store_keeps_unrelated_keys(tmp_path):
    path = tmp_path / "settings.json"
    store = JsonFileKeyValueStore(path)

    async def scenario():
        await store.write({"ENABLED": "D", "BREAK_PROXY": "T"})
        await store.write({"ENABLED": "S"})
        return await store.read(["ENABLED", "BREAK_PROXY", "SELECTED_COUNTRY"])

    assert asyncio.run(scenario()) == {"ENABLED": "S", "BREAK_PROXY": "T"}


def test_json_file_store_reports_corruption(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    with pytest.raises(StorageCorruptedError):
        asyncio.run(Storage(JsonFileKeyValueStore(path)).load())


def test_channel_store_rejects_malformed_values():
    transport = FakeTransport({"READ_LOCAL_STORAGE": lambda _: {"status": "OK", "values": ["ENABLED"]}})

    with pytest.raises(StorageError):
        asyncio.run(Storage(ChannelKeyValueStore(channel(transport))).load())
