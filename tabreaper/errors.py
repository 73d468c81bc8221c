"""Error types for the expiration engine."""

from __future__ import annotations


class TabReaperError(RuntimeError):
    """Base error for tabreaper."""


class InvalidUnit(TabReaperError):
    """Timeout unit symbol is not one of minutes, hours or days."""

    def __init__(self, unit: object) -> None:
        super().__init__(f"Unrecognized timeout unit: {unit!r}")
        self.unit = unit


class InvalidSettings(TabReaperError):
    """Settings rejected at the write boundary."""


class StoreUnavailable(TabReaperError):
    """The key-value store failed or did not answer in time."""


class HostCloseFailed(TabReaperError):
    """The host refused or failed to close an item."""

    def __init__(self, item_id: int, reason: str) -> None:
        super().__init__(f"Failed to close item {item_id}: {reason}")
        self.item_id = item_id
        self.reason = reason
