"""Protection indicator shown on each item."""

from __future__ import annotations

from ..logging_utils import get_logger
from .host import Host
from .protection import ProtectionRegistry
from .schemas import Badge

PROTECTED_BADGE = Badge(text="\U0001f512", color="#5dc162")
CLEAR_BADGE = Badge(text="", color=None)


def badge_for(protected: bool) -> Badge:
    return PROTECTED_BADGE if protected else CLEAR_BADGE


class BadgeUpdater:
    def __init__(self, registry: ProtectionRegistry, host: Host) -> None:
        self._registry = registry
        self._host = host
        self._log = get_logger("expiry.badge")

    async def update(self, item_id: int) -> Badge | None:
        """Project the protection flag onto the host; failures are logged only."""

        try:
            badge = badge_for(await self._registry.is_protected(item_id))
            await self._host.set_badge(item_id, badge)
        except Exception as exc:
            # The item may already be gone.
            self._log.debug("Badge update for item {} skipped: {}", item_id, exc)
            return None
        return badge
