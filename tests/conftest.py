from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tabreaper.config import EngineConfig  # noqa: E402
from tabreaper.expiry.clock import FixedClock  # noqa: E402
from tabreaper.expiry.host import FakeHost  # noqa: E402
from tabreaper.expiry.service import ExpiryService  # noqa: E402
from tabreaper.storage.kv import MemoryKeyValueStore  # noqa: E402

NOW_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger.remove()
    logger.add(sys.stderr, level="INFO")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW_MS)


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def settings_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore({"timeout": 30, "unit": "minutes", "historyLimit": 100})


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def service_factory(store, settings_store, host, clock):
    def _factory(**config) -> ExpiryService:
        return ExpiryService(
            EngineConfig(**config),
            store=store,
            settings_store=settings_store,
            host=host,
            clock=clock,
        )

    return _factory
