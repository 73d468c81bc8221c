"""User-facing expiry settings and their store-backed provider."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidSettings
from ..logging_utils import get_logger
from ..storage.kv import KeyValueStore
from . import units
from .units import MS_PER_UNIT

SETTINGS_KEYS = ("timeout", "unit", "historyLimit")
UNBOUNDED_HISTORY = -1

DEFAULT_TIMEOUT = 12
DEFAULT_UNIT = "hours"
DEFAULT_HISTORY_LIMIT = 1000


class ExpirySettings(BaseModel):
    """Stored settings as read; validation happens in :meth:`SettingsProvider.save`."""

    model_config = ConfigDict(populate_by_name=True)

    timeout: int = DEFAULT_TIMEOUT
    unit: str = DEFAULT_UNIT
    history_limit: int = Field(DEFAULT_HISTORY_LIMIT, alias="historyLimit")

    @property
    def timeout_ms(self) -> int:
        return units.timeout_ms(self.timeout, self.unit)

    @property
    def history_unbounded(self) -> bool:
        return self.history_limit < 0

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def validate_settings(settings: ExpirySettings) -> ExpirySettings:
    if settings.timeout < 1:
        raise InvalidSettings(f"timeout must be a positive integer, got {settings.timeout}")
    if settings.unit not in MS_PER_UNIT:
        raise InvalidSettings(
            f"unit must be one of {', '.join(MS_PER_UNIT)}, got {settings.unit!r}"
        )
    if settings.history_limit < UNBOUNDED_HISTORY or settings.history_limit == 0:
        raise InvalidSettings(
            f"historyLimit must be -1 or a positive integer, got {settings.history_limit}"
        )
    return settings


class SettingsProvider:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._log = get_logger("expiry.settings")

    async def load(self) -> ExpirySettings:
        raw = await self._store.get(SETTINGS_KEYS)
        history_limit = raw.get("historyLimit")
        try:
            return ExpirySettings(
                timeout=raw.get("timeout") or DEFAULT_TIMEOUT,
                unit=raw.get("unit") or DEFAULT_UNIT,
                history_limit=DEFAULT_HISTORY_LIMIT if history_limit is None else history_limit,
            )
        except ValidationError as exc:
            raise InvalidSettings(f"Stored settings are malformed: {exc}") from exc

    async def save(self, settings: ExpirySettings) -> ExpirySettings:
        validate_settings(settings)
        await self._store.set(settings.to_record())
        self._log.info(
            "Settings saved: timeout={} {}, historyLimit={}",
            settings.timeout,
            settings.unit,
            settings.history_limit,
        )
        return settings

    async def update(self, **changes: Any) -> ExpirySettings:
        current = await self.load()
        merged = current.model_copy(update={k: v for k, v in changes.items() if v is not None})
        return await self.save(merged)
