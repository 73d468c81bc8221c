"""Per-item exemption flags."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..logging_utils import get_logger
from ..storage.kv import KeyValueStore
from .clock import Clock
from .keys import protection_key
from .tracker import ActivityTracker

ChangeListener = Callable[[int], Awaitable[None]]


class ProtectionRegistry:
    """Stores ``protected_<id>`` flags; absence means not protected.

    Unprotecting an item removes the flag and then re-arms its idle timer by
    writing ``now`` as its last-active timestamp. Both writes run under
    ``lock`` so a sweep sharing the lock never reads between them.
    """

    def __init__(
        self,
        store: KeyValueStore,
        tracker: ActivityTracker,
        clock: Clock,
        *,
        lock: asyncio.Lock | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._clock = clock
        self._lock = lock or asyncio.Lock()
        self._on_change = on_change
        self._log = get_logger("expiry.protection")

    def set_listener(self, on_change: ChangeListener | None) -> None:
        self._on_change = on_change

    async def is_protected(self, item_id: int) -> bool:
        key = protection_key(item_id)
        data = await self._store.get([key])
        return bool(data.get(key))

    async def set_protected(self, item_id: int, protected: bool) -> None:
        async with self._lock:
            if protected:
                await self._store.set({protection_key(item_id): True})
            else:
                await self._store.remove([protection_key(item_id)])
                await self._tracker.touch(item_id, self._clock.now_ms())
        self._log.info("Item {} protection set to {}", item_id, protected)
        if self._on_change is not None:
            await self._on_change(item_id)

    async def toggle(self, item_id: int) -> bool:
        protected = not await self.is_protected(item_id)
        await self.set_protected(item_id, protected)
        return protected
