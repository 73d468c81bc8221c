"""Reconcile per-item keys against the host's live items."""

from __future__ import annotations

from ..logging_utils import get_logger
from ..storage.kv import KeyValueStore
from .host import Host
from .keys import parse_item_key


def orphaned_keys(keys, live_ids: set[int]) -> list[str]:
    """Per-item keys whose item id is not live; other keys are never returned."""

    orphans: list[str] = []
    for key in keys:
        parsed = parse_item_key(key)
        if parsed is None:
            continue
        _, item_id = parsed
        if item_id not in live_ids:
            orphans.append(key)
    return orphans


class StorageJanitor:
    def __init__(self, store: KeyValueStore, host: Host) -> None:
        self._store = store
        self._host = host
        self._log = get_logger("expiry.janitor")

    async def run(self) -> list[str]:
        stored = await self._store.get_all()
        live_ids = {item.id for item in await self._host.query_items()}
        orphans = orphaned_keys(stored.keys(), live_ids)
        if orphans:
            await self._store.remove(orphans)
            self._log.info("Janitor removed {} orphaned keys", len(orphans))
        return orphans
