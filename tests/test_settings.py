from __future__ import annotations

import asyncio

import pytest

from tabreaper.errors import InvalidSettings, InvalidUnit
from tabreaper.expiry.settings import ExpirySettings, SettingsProvider
from tabreaper.storage.kv import MemoryKeyValueStore


def test_defaults_when_nothing_stored() -> None:
    provider = SettingsProvider(MemoryKeyValueStore())
    settings = asyncio.run(provider.load())
    assert settings.timeout == 12
    assert settings.unit == "hours"
    assert settings.history_limit == 1000
    assert settings.timeout_ms == 12 * 3_600_000


def test_stored_values_are_read() -> None:
    store = MemoryKeyValueStore({"timeout": 60, "unit": "days", "historyLimit": -1})
    settings = asyncio.run(SettingsProvider(store).load())
    assert settings.timeout == 60
    assert settings.unit == "days"
    assert settings.history_unbounded


def test_stored_zero_history_limit_is_kept() -> None:
    store = MemoryKeyValueStore({"historyLimit": 0})
    settings = asyncio.run(SettingsProvider(store).load())
    assert settings.history_limit == 0
    assert settings.timeout == 12


def test_stored_unknown_unit_fails_on_conversion() -> None:
    store = MemoryKeyValueStore({"unit": "fortnights"})
    settings = asyncio.run(SettingsProvider(store).load())
    with pytest.raises(InvalidUnit):
        _ = settings.timeout_ms


@pytest.mark.parametrize(
    "settings",
    [
        ExpirySettings(timeout=0),
        ExpirySettings(unit="weeks"),
        ExpirySettings(history_limit=0),
        ExpirySettings(history_limit=-2),
    ],
)
def test_save_rejects_invalid_settings(settings) -> None:
    store = MemoryKeyValueStore()
    with pytest.raises(InvalidSettings):
        asyncio.run(SettingsProvider(store).save(settings))
    assert store.snapshot() == {}


def test_update_merges_with_stored_values() -> None:
    store = MemoryKeyValueStore({"timeout": 5, "unit": "minutes", "historyLimit": 20})
    provider = SettingsProvider(store)
    saved = asyncio.run(provider.update(history_limit=-1, unit=None))
    assert saved.timeout == 5
    assert saved.unit == "minutes"
    assert store.snapshot() == {"timeout": 5, "unit": "minutes", "historyLimit": -1}


def test_malformed_stored_timeout_is_invalid_settings() -> None:
    store = MemoryKeyValueStore({"timeout": "abc", "unit": "minutes"})
    with pytest.raises(InvalidSettings):
        asyncio.run(SettingsProvider(store).load())
