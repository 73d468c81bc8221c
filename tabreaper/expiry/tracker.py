"""Last-active timestamps per tracked item."""

from __future__ import annotations

from typing import Mapping

from ..storage.kv import KeyValueStore
from .keys import activity_key, item_keys


class ActivityTracker:
    """Upserts and reads ``tab_<id>`` timestamps; expiry decisions live in the sweep."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def touch(self, item_id: int, now_ms: int) -> None:
        await self._store.set({activity_key(item_id): int(now_ms)})

    async def touch_many(self, stamps: Mapping[int, int]) -> None:
        if not stamps:
            return
        await self._store.set({activity_key(item_id): int(ts) for item_id, ts in stamps.items()})

    async def get(self, item_id: int) -> int | None:
        key = activity_key(item_id)
        data = await self._store.get([key])
        return as_timestamp(data.get(key))

    async def remove(self, item_id: int) -> None:
        await self._store.remove([activity_key(item_id)])

    async def forget(self, item_id: int) -> None:
        """Drop both per-item keys for a closed item in one call."""

        await self._store.remove(item_keys(item_id))


def as_timestamp(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
