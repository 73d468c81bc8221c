from __future__ import annotations

import asyncio

from tabreaper.expiry.protection import ProtectionRegistry
from tabreaper.expiry.tracker import ActivityTracker

NOW_MS = 1_700_000_000_000
MINUTE_MS = 60_000


def test_touch_get_remove(store) -> None:
    tracker = ActivityTracker(store)

    async def _scenario():
        await tracker.touch(7, NOW_MS)
        first = await tracker.get(7)
        await tracker.touch(7, NOW_MS + 5)
        second = await tracker.get(7)
        await tracker.remove(7)
        return first, second, await tracker.get(7)

    assert asyncio.run(_scenario()) == (NOW_MS, NOW_MS + 5, None)
    assert store.snapshot() == {}


def test_touch_many_is_one_write(store) -> None:
    tracker = ActivityTracker(store)

    async def _scenario():
        await tracker.touch_many({1: 10, 2: 20})
        await tracker.touch_many({})
        return await tracker.get(2)

    assert asyncio.run(_scenario()) == 20
    assert [op for op, _ in store.operations] == ["set", "get"]
    assert store.snapshot() == {"tab_1": 10, "tab_2": 20}


def test_forget_drops_both_keys(store) -> None:
    store_data = {"tab_4": NOW_MS, "protected_4": True, "tab_5": NOW_MS}
    asyncio.run(store.set(store_data))
    asyncio.run(ActivityTracker(store).forget(4))
    assert store.snapshot() == {"tab_5": NOW_MS}


def test_protect_writes_flag_only(store, clock) -> None:
    tracker = ActivityTracker(store)
    registry = ProtectionRegistry(store, tracker, clock)
    asyncio.run(store.set({"tab_3": NOW_MS - 90 * MINUTE_MS}))

    asyncio.run(registry.set_protected(3, True))

    assert store.snapshot() == {"tab_3": NOW_MS - 90 * MINUTE_MS, "protected_3": True}
    assert asyncio.run(registry.is_protected(3))
    assert not asyncio.run(registry.is_protected(4))


def test_unprotect_removes_flag_and_resets_idle_clock(store, clock) -> None:
    tracker = ActivityTracker(store)
    registry = ProtectionRegistry(store, tracker, clock)
    asyncio.run(store.set({"tab_3": NOW_MS - 10_000 * MINUTE_MS, "protected_3": True}))
    clock.advance(seconds=30)

    asyncio.run(registry.set_protected(3, False))

    assert store.snapshot() == {"tab_3": NOW_MS + 30_000}


def test_every_write_notifies_listener(store, clock) -> None:
    changed: list[int] = []

    async def _listener(item_id: int) -> None:
        changed.append(item_id)

    registry = ProtectionRegistry(store, ActivityTracker(store), clock, on_change=_listener)

    async def _scenario():
        assert await registry.toggle(9) is True
        assert await registry.toggle(9) is False
        await registry.set_protected(2, True)

    asyncio.run(_scenario())
    assert changed == [9, 9, 2]

