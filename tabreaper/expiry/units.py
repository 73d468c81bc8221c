"""Timeout unit conversion."""

from __future__ import annotations

from ..errors import InvalidUnit

MS_PER_UNIT = {
    "minutes": 60 * 1000,
    "hours": 60 * 60 * 1000,
    "days": 24 * 60 * 60 * 1000,
}


def unit_to_ms(unit: str) -> int:
    try:
        return MS_PER_UNIT[unit]
    except (KeyError, TypeError):
        raise InvalidUnit(unit) from None


def timeout_ms(timeout: int, unit: str) -> int:
    return unit_to_ms(unit) * timeout
