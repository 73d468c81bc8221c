"""Periodic sweep deciding which idle items to evict."""

from __future__ import annotations

import asyncio
from typing import Iterable

from ..errors import HostCloseFailed, TabReaperError
from ..logging_utils import get_logger
from ..storage.kv import KeyValueStore
from .clock import Clock
from .history import HistoryLog
from .host import Host
from .keys import activity_key, protection_key
from .schemas import EvictionFailure, HistoryEntry, SweepReport, TrackedItem
from .settings import SettingsProvider
from .tracker import ActivityTracker, as_timestamp


def select_candidates(items: Iterable[TrackedItem]) -> list[TrackedItem]:
    """Pinned and audible items are never candidates."""

    return [item for item in items if not item.pinned and not item.audible]


def is_expired(last_active_ms: int, now_ms: int, timeout_ms: int) -> bool:
    return now_ms - last_active_ms > timeout_ms


class Sweeper:
    """Runs one sweep at a time; a tick arriving mid-sweep is dropped."""

    def __init__(
        self,
        *,
        store: KeyValueStore,
        host: Host,
        settings: SettingsProvider,
        tracker: ActivityTracker,
        history: HistoryLog,
        clock: Clock,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self._store = store
        self._host = host
        self._settings = settings
        self._tracker = tracker
        self._history = history
        self._clock = clock
        self._lock = lock or asyncio.Lock()
        self._running = False
        self._log = get_logger("expiry.sweep")

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> SweepReport:
        if self._running:
            self._log.debug("Sweep already in progress; tick dropped")
            return SweepReport(now_ms=self._clock.now_ms(), dropped=True)
        self._running = True
        try:
            async with self._lock:
                return await self._sweep()
        finally:
            self._running = False

    async def _sweep(self) -> SweepReport:
        now = self._clock.now_ms()
        report = SweepReport(now_ms=now)

        candidates = select_candidates(await self._host.query_items())
        report.candidates = len(candidates)
        if not candidates:
            return report

        settings = await self._settings.load()
        timeout_ms = settings.timeout_ms

        keys: list[str] = []
        for item in candidates:
            keys.append(activity_key(item.id))
            keys.append(protection_key(item.id))
        stored = await self._store.get(keys)

        updates: dict[int, int] = {}
        expired: list[TrackedItem] = []
        for item in candidates:
            if stored.get(protection_key(item.id)):
                report.skipped_protected.append(item.id)
                continue
            if item.active:
                updates[item.id] = now
                continue
            last_active = as_timestamp(stored.get(activity_key(item.id)))
            if last_active is None:
                updates[item.id] = now
                continue
            if is_expired(last_active, now, timeout_ms):
                expired.append(item)

        for item in expired:
            failure = await self._evict(item, now)
            if failure is None:
                report.evicted.append(item.id)
            else:
                report.failures.append(failure)

        if updates:
            await self._tracker.touch_many(updates)
            report.touched.extend(updates)
        return report

    async def _evict(self, item: TrackedItem, now: int) -> EvictionFailure | None:
        try:
            await self._history.append(HistoryEntry(title=item.title, url=item.url, closed_at=now))
        except TabReaperError as exc:
            self._log.warning("Could not record item {} in history: {}", item.id, exc)
            return EvictionFailure(item.id, "history_append_failed", str(exc))
        try:
            await self._host.close_item(item.id)
        except HostCloseFailed as exc:
            # History entry stays: the item may have been closed externally.
            self._log.warning("Failed to close item {}: {}", item.id, exc.reason)
            return EvictionFailure(item.id, "host_close_failed", exc.reason)
        except Exception as exc:
            self._log.warning("Failed to close item {}: {}", item.id, exc)
            return EvictionFailure(item.id, "host_close_failed", str(exc))
        self._log.info("Evicted idle item {} ({})", item.id, item.url)
        return None
