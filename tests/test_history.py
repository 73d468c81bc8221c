from __future__ import annotations

import asyncio

from tabreaper.expiry.history import HistoryLog, filter_history, trim_entries
from tabreaper.expiry.schemas import HistoryEntry
from tabreaper.expiry.settings import SettingsProvider
from tabreaper.storage.kv import MemoryKeyValueStore

NOW_MS = 1_700_000_000_000


def _records(count: int) -> list[dict]:
    return [
        {"id": f"old-{i}", "title": f"Old {i}", "url": f"https://old/{i}", "closedAt": NOW_MS - i}
        for i in range(count)
    ]


def _log(history_limit: int, existing: list[dict] | None = None):
    store = MemoryKeyValueStore({"expiredTabs": existing or []})
    settings = SettingsProvider(MemoryKeyValueStore({"historyLimit": history_limit}))
    return HistoryLog(store, settings), store


def test_append_assigns_unique_id_and_prepends() -> None:
    log, _ = _log(100)

    async def _scenario():
        first = await log.append(HistoryEntry(title="A", url="https://a", closed_at=1))
        second = await log.append(HistoryEntry(title="B", url="https://b", closed_at=2))
        return first, second, await log.list()

    first, second, entries = asyncio.run(_scenario())
    assert first.id and second.id and first.id != second.id
    assert [e.title for e in entries] == ["B", "A"]


def test_append_keeps_given_id() -> None:
    log, store = _log(100)
    asyncio.run(log.append(HistoryEntry(id="fixed", title="A", url="u", closed_at=1)))
    assert store.snapshot()["expiredTabs"] == [
        {"id": "fixed", "title": "A", "url": "u", "closedAt": 1}
    ]


def test_limit_drops_oldest_after_insert() -> None:
    log, _ = _log(10, _records(10))
    asyncio.run(log.append(HistoryEntry(id="new", title="New", url="u", closed_at=NOW_MS + 1)))
    entries = asyncio.run(log.list())
    assert len(entries) == 10
    assert entries[0].id == "new"
    assert "old-9" not in {e.id for e in entries}
    assert entries[-1].id == "old-8"


def test_unbounded_history_keeps_everything() -> None:
    log, _ = _log(-1, _records(150))
    asyncio.run(log.append(HistoryEntry(title="New", url="u", closed_at=NOW_MS + 1)))
    assert len(asyncio.run(log.list())) == 151


def test_stored_zero_limit_drops_everything() -> None:
    log, _ = _log(0, _records(3))
    asyncio.run(log.append(HistoryEntry(title="New", url="u", closed_at=NOW_MS)))
    assert asyncio.run(log.list()) == []


def test_remove_by_id_is_idempotent() -> None:
    log, _ = _log(100, _records(3))

    async def _scenario():
        assert await log.remove_by_id("old-1") is True
        once = await log.list()
        assert await log.remove_by_id("old-1") is False
        return once, await log.list()

    once, twice = asyncio.run(_scenario())
    assert once == twice
    assert [e.id for e in twice] == ["old-0", "old-2"]


def test_remove_matches_numeric_ids_as_strings() -> None:
    log, _ = _log(100, [{"id": 12345, "title": "t", "url": "u", "closedAt": 1}])
    asyncio.run(log.remove_by_id("12345"))
    assert asyncio.run(log.list()) == []


def test_clear() -> None:
    log, store = _log(100, _records(5))
    asyncio.run(log.clear())
    assert store.snapshot()["expiredTabs"] == []


def test_trim_entries_boundaries() -> None:
    entries = _records(3)
    assert trim_entries(entries, 3) == entries
    assert trim_entries(entries, 2) == entries[:2]
    assert trim_entries(entries, -1) == entries


def test_filter_history_matches_all_terms_in_title_or_url() -> None:
    entries = [
        HistoryEntry(id="1", title="Python asyncio docs", url="https://docs.python.org/asyncio", closed_at=1),
        HistoryEntry(id="2", title="Release notes", url="https://github.com/python/cpython", closed_at=2),
        HistoryEntry(id="3", title="Weather", url="https://weather.example", closed_at=3),
    ]
    assert [e.id for e in filter_history(entries, "PYTHON docs")] == ["1"]
    assert [e.id for e in filter_history(entries, "github python")] == ["2"]
    # Terms split across title and URL do not match.
    assert filter_history(entries, "release cpython") == []
    assert filter_history(entries, "   ") == entries
