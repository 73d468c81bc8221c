"""Expiry service wiring: event handlers, periodic sweep tick and janitor."""

from __future__ import annotations

import asyncio
from typing import Any

from ..config import EngineConfig
from ..errors import TabReaperError
from ..logging_utils import get_logger
from ..observability.metrics import SweepMetrics
from ..storage.kv import KeyValueStore
from .badge import BadgeUpdater
from .clock import Clock, SystemClock
from .history import HistoryLog
from .host import EventHandlers, Host
from .janitor import StorageJanitor
from .protection import ProtectionRegistry
from .schemas import SweepReport
from .settings import SettingsProvider
from .sweep import Sweeper
from .tracker import ActivityTracker

TOGGLE_PROTECTION = "toggle-protection"
OPEN_HISTORY = "open-history"
LOAD_COMPLETE = "complete"


class ExpiryService:
    """Process-owned context for the expiration engine.

    Host callbacks are registered in :meth:`start` and removed in :meth:`stop`;
    nothing is wired at import time.
    """

    name = "expiry"

    def __init__(
        self,
        config: EngineConfig,
        *,
        store: KeyValueStore,
        settings_store: KeyValueStore,
        host: Host,
        clock: Clock | None = None,
        metrics: SweepMetrics | None = None,
    ) -> None:
        self._config = config
        self._host = host
        self._clock = clock or SystemClock()
        self._metrics = metrics
        self._log = get_logger("expiry")
        # Shared by the sweep and the unprotect-then-touch sequence.
        self._lock = asyncio.Lock()
        self.settings = SettingsProvider(settings_store)
        self.tracker = ActivityTracker(store)
        self.protection = ProtectionRegistry(store, self.tracker, self._clock, lock=self._lock)
        self.history = HistoryLog(store, self.settings)
        self.badges = BadgeUpdater(self.protection, host)
        self.protection.set_listener(self.badges.update)
        self.janitor = StorageJanitor(store, host)
        self.sweeper = Sweeper(
            store=store,
            host=host,
            settings=self.settings,
            tracker=self.tracker,
            history=self.history,
            clock=self._clock,
            lock=self._lock,
        )
        self._handlers: EventHandlers | None = None
        self._ticker: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._last_report: SweepReport | None = None
        self._last_error: str | None = None

    @property
    def started(self) -> bool:
        return self._handlers is not None

    @property
    def last_report(self) -> SweepReport | None:
        return self._last_report

    async def start(self) -> None:
        if self._handlers is not None:
            return
        self._handlers = EventHandlers(
            on_activated=self.on_activated,
            on_updated=self.on_updated,
            on_removed=self.on_removed,
            on_command=self.on_command,
        )
        self._host.register(self._handlers)
        if self._config.janitor_on_start:
            try:
                await self.janitor.run()
            except TabReaperError as exc:
                self._last_error = str(exc)
                self._log.warning("Startup janitor failed: {}", exc)
        self._ticker = asyncio.create_task(self._tick_loop())
        self._log.info("Expiry service started (tick every {}s)", self._config.sweep_interval_s)

    async def stop(self) -> None:
        if self._handlers is None:
            return
        self._host.unregister()
        self._handlers = None
        tasks = [task for task in (self._ticker, *self._inflight) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._ticker = None
        self._inflight.clear()
        self._log.info("Expiry service stopped")

    async def tick(self) -> SweepReport | None:
        """Run one sweep; errors are logged and retried on the next tick."""

        try:
            report = await self.sweeper.run()
        except TabReaperError as exc:
            self._last_error = str(exc)
            self._log.warning("Sweep aborted: {}", exc)
            if self._metrics:
                self._metrics.observe_error()
            return None
        except Exception as exc:
            self._last_error = str(exc)
            self._log.exception("Sweep failed unexpectedly: {}", exc)
            if self._metrics:
                self._metrics.observe_error()
            return None
        if self._metrics:
            self._metrics.observe(report)
        if report.dropped:
            return report
        self._last_report = report
        if report.evicted or report.failures:
            self._log.info(
                "Sweep evicted {} of {} candidates ({} failures)",
                len(report.evicted),
                report.candidates,
                len(report.failures),
            )
        return report

    async def on_activated(self, item_id: int) -> None:
        await self._guarded("activated", self._observe(item_id))

    async def on_updated(self, item_id: int, status: str) -> None:
        if status != LOAD_COMPLETE:
            return
        await self._guarded("updated", self._observe(item_id))

    async def on_removed(self, item_id: int) -> None:
        await self._guarded("removed", self.tracker.forget(item_id))

    async def on_command(self, command: str) -> None:
        await self._guarded(command, self._run_command(command))

    async def _observe(self, item_id: int) -> None:
        await self.tracker.touch(item_id, self._clock.now_ms())
        await self.badges.update(item_id)

    async def _guarded(self, event: str, work) -> None:
        try:
            await work
        except TabReaperError as exc:
            self._last_error = str(exc)
            self._log.warning("Handler for {} failed: {}", event, exc)

    async def _run_command(self, command: str) -> None:
        if command == TOGGLE_PROTECTION:
            item = await self._host.active_item()
            if item is None:
                return
            protected = await self.protection.toggle(item.id)
            await self._host.notify_protection(item.id, protected)
        elif command == OPEN_HISTORY:
            await self._host.open_history()
        else:
            self._log.debug("Ignoring unknown command {}", command)

    def health(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "sweep_running": self.sweeper.running,
            "last_error": self._last_error,
            "last_report": self._last_report.summary() if self._last_report else None,
        }

    async def _tick_loop(self) -> None:
        interval = self._config.sweep_interval_s
        while True:
            await asyncio.sleep(interval)
            # Ticks are not awaited so an overlapping one hits the sweep guard.
            task = asyncio.create_task(self.tick())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
