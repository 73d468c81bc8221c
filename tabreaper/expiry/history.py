"""Bounded log of evicted items, newest first."""

from __future__ import annotations

import uuid

from ..logging_utils import get_logger
from ..storage.kv import KeyValueStore
from .keys import HISTORY_KEY
from .settings import SettingsProvider
from .schemas import HistoryEntry


def new_entry_id() -> str:
    return uuid.uuid4().hex


def trim_entries(entries: list[dict], history_limit: int) -> list[dict]:
    """Drop the oldest entries (highest index) beyond ``history_limit``.

    A negative limit is unbounded; a limit of 0 drops everything.
    """

    if history_limit < 0 or len(entries) <= history_limit:
        return entries
    return entries[:history_limit]


class HistoryLog:
    def __init__(self, store: KeyValueStore, settings: SettingsProvider) -> None:
        self._store = store
        self._settings = settings
        self._log = get_logger("expiry.history")

    async def list(self) -> list[HistoryEntry]:
        return [HistoryEntry.model_validate(record) for record in await self._load()]

    async def append(self, entry: HistoryEntry) -> HistoryEntry:
        settings = await self._settings.load()
        if entry.id is None:
            entry = entry.model_copy(update={"id": new_entry_id()})
        records = await self._load()
        records.insert(0, entry.to_record())
        trimmed = trim_entries(records, settings.history_limit)
        if len(trimmed) < len(records):
            self._log.debug(
                "History trimmed from {} to {} entries", len(records), len(trimmed)
            )
        await self._store.set({HISTORY_KEY: trimmed})
        return entry

    async def remove_by_id(self, entry_id: str) -> bool:
        records = await self._load()
        kept = [record for record in records if str(record.get("id")) != str(entry_id)]
        if len(kept) == len(records):
            return False
        await self._store.set({HISTORY_KEY: kept})
        return True

    async def clear(self) -> None:
        await self._store.set({HISTORY_KEY: []})
        self._log.info("History cleared")

    async def _load(self) -> list[dict]:
        data = await self._store.get([HISTORY_KEY])
        records = data.get(HISTORY_KEY) or []
        return [record for record in records if isinstance(record, dict)]


def filter_history(entries: list[HistoryEntry], query: str | None) -> list[HistoryEntry]:
    """Keep entries whose title, or whose URL, contains every query term."""

    terms = [term for term in (query or "").lower().split() if term]
    if not terms:
        return list(entries)
    matched: list[HistoryEntry] = []
    for entry in entries:
        title = entry.title.lower()
        url = entry.url.lower()
        if all(term in title for term in terms) or all(term in url for term in terms):
            matched.append(entry)
    return matched
