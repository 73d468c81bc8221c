"""Store key schema for per-item state.

Per-item facts live under ``tab_<id>`` (last-active timestamp) and
``protected_<id>`` (protection flag). History is a single list under
``expiredTabs``; settings use their own area.
"""

from __future__ import annotations

from typing import Literal

ACTIVITY_PREFIX = "tab_"
PROTECTION_PREFIX = "protected_"
HISTORY_KEY = "expiredTabs"

KeyKind = Literal["activity", "protection"]


def activity_key(item_id: int) -> str:
    return f"{ACTIVITY_PREFIX}{item_id}"


def protection_key(item_id: int) -> str:
    return f"{PROTECTION_PREFIX}{item_id}"


def item_keys(item_id: int) -> tuple[str, str]:
    return activity_key(item_id), protection_key(item_id)


def parse_item_key(key: str) -> tuple[KeyKind, int] | None:
    """Return ``(kind, item_id)`` for per-item keys, ``None`` for anything else."""

    if key.startswith(ACTIVITY_PREFIX):
        kind: KeyKind = "activity"
        suffix = key[len(ACTIVITY_PREFIX) :]
    elif key.startswith(PROTECTION_PREFIX):
        kind = "protection"
        suffix = key[len(PROTECTION_PREFIX) :]
    else:
        return None
    try:
        item_id = int(suffix)
    except ValueError:
        return None
    if str(item_id) != suffix:
        return None
    return kind, item_id
