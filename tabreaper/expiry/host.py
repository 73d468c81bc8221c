"""Contract with the host window manager, plus an in-memory host for tests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Protocol

from ..errors import HostCloseFailed
from .schemas import Badge, TrackedItem


@dataclass(slots=True)
class EventHandlers:
    """Callbacks the host invokes; registered once by the service."""

    on_activated: Callable[[int], Awaitable[None]]
    on_updated: Callable[[int, str], Awaitable[None]]
    on_removed: Callable[[int], Awaitable[None]]
    on_command: Callable[[str], Awaitable[None]]


class Host(Protocol):
    async def query_items(self) -> list[TrackedItem]: ...

    async def active_item(self) -> TrackedItem | None: ...

    async def close_item(self, item_id: int) -> None: ...

    async def set_badge(self, item_id: int, badge: Badge) -> None: ...

    async def notify_protection(self, item_id: int, protected: bool) -> None: ...

    async def open_history(self) -> None: ...

    def register(self, handlers: EventHandlers) -> None: ...

    def unregister(self) -> None: ...


class FakeHost:
    """Deterministic host keeping items in memory and recording side effects."""

    def __init__(self, items: Iterable[TrackedItem] = ()) -> None:
        self._items: dict[int, TrackedItem] = {item.id: item for item in items}
        self.handlers: EventHandlers | None = None
        self.closed: list[int] = []
        self.badges: dict[int, Badge] = {}
        self.notifications: list[tuple[int, bool]] = []
        self.history_opened = 0
        self.fail_close: set[int] = set()
        self.fail_badge: set[int] = set()

    @property
    def items(self) -> dict[int, TrackedItem]:
        return dict(self._items)

    def add(self, item: TrackedItem) -> None:
        self._items[item.id] = item

    def update(self, item_id: int, **changes) -> TrackedItem:
        item = self._items[item_id].model_copy(update=changes)
        self._items[item_id] = item
        return item

    def drop(self, item_id: int) -> None:
        self._items.pop(item_id, None)

    async def query_items(self) -> list[TrackedItem]:
        return list(self._items.values())

    async def active_item(self) -> TrackedItem | None:
        for item in self._items.values():
            if item.active:
                return item
        return None

    async def close_item(self, item_id: int) -> None:
        if item_id in self.fail_close:
            raise HostCloseFailed(item_id, "close rejected by host")
        if item_id not in self._items:
            raise HostCloseFailed(item_id, "no such item")
        del self._items[item_id]
        self.closed.append(item_id)
        if self.handlers is not None:
            await self.handlers.on_removed(item_id)

    async def set_badge(self, item_id: int, badge: Badge) -> None:
        if item_id in self.fail_badge or item_id not in self._items:
            raise LookupError(f"no such item {item_id}")
        self.badges[item_id] = badge

    async def notify_protection(self, item_id: int, protected: bool) -> None:
        self.notifications.append((item_id, protected))

    async def open_history(self) -> None:
        self.history_opened += 1

    def register(self, handlers: EventHandlers) -> None:
        self.handlers = handlers

    def unregister(self) -> None:
        self.handlers = None
