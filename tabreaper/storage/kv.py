"""Asynchronous key-value store used for per-item state, history and settings."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Iterable, Mapping, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailable
from ..logging_utils import get_logger
from .database import DatabaseManager
from .models import KvEntryRecord

LOCAL_AREA = "local"
SYNC_AREA = "sync"


class KeyValueStore(Protocol):
    async def get(self, keys: Iterable[str]) -> dict[str, Any]: ...

    async def get_all(self) -> dict[str, Any]: ...

    async def set(self, items: Mapping[str, Any]) -> None: ...

    async def remove(self, keys: Iterable[str]) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store; every call is appended to ``operations``."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self.operations: list[tuple[str, tuple[str, ...]]] = []

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        keys = tuple(keys)
        self.operations.append(("get", keys))
        return {key: copy.deepcopy(self._data[key]) for key in keys if key in self._data}

    async def get_all(self) -> dict[str, Any]:
        self.operations.append(("get_all", ()))
        return copy.deepcopy(self._data)

    async def set(self, items: Mapping[str, Any]) -> None:
        self.operations.append(("set", tuple(items)))
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)

    async def remove(self, keys: Iterable[str]) -> None:
        keys = tuple(keys)
        self.operations.append(("remove", keys))
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class SqlKeyValueStore:
    """Key-value area persisted in the ``kv_entries`` table."""

    def __init__(
        self,
        db: DatabaseManager,
        *,
        area: str = LOCAL_AREA,
        timeout_s: float = 10.0,
    ) -> None:
        self._db = db
        self._area = area
        self._timeout_s = timeout_s
        self._log = get_logger("storage.kv")

    @property
    def area(self) -> str:
        return self._area

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return {}

        def _load(session) -> dict[str, Any]:
            rows = session.execute(
                select(KvEntryRecord).where(
                    KvEntryRecord.area == self._area,
                    KvEntryRecord.key.in_(keys),
                )
            ).scalars()
            return {row.key: row.value_json for row in rows}

        return await self._run("get", _load)

    async def get_all(self) -> dict[str, Any]:
        def _load(session) -> dict[str, Any]:
            rows = session.execute(
                select(KvEntryRecord).where(KvEntryRecord.area == self._area)
            ).scalars()
            return {row.key: row.value_json for row in rows}

        return await self._run("get_all", _load)

    async def set(self, items: Mapping[str, Any]) -> None:
        if not items:
            return
        payload = dict(items)

        def _tx(session) -> None:
            existing = {
                row.key: row
                for row in session.execute(
                    select(KvEntryRecord).where(
                        KvEntryRecord.area == self._area,
                        KvEntryRecord.key.in_(list(payload)),
                    )
                ).scalars()
            }
            for key, value in payload.items():
                record = existing.get(key)
                if record is None:
                    session.add(KvEntryRecord(area=self._area, key=key, value_json=value))
                else:
                    record.value_json = value

        await self._run("set", _tx)

    async def remove(self, keys: Iterable[str]) -> None:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return

        def _tx(session) -> None:
            session.execute(
                delete(KvEntryRecord).where(
                    KvEntryRecord.area == self._area,
                    KvEntryRecord.key.in_(keys),
                )
            )

        await self._run("remove", _tx)

    async def _run(self, op: str, fn):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._db.transaction, fn),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            self._log.warning("Store {} on area {} timed out", op, self._area)
            raise StoreUnavailable(f"{op} timed out after {self._timeout_s}s") from exc
        except SQLAlchemyError as exc:
            self._log.warning("Store {} on area {} failed: {}", op, self._area, exc)
            raise StoreUnavailable(f"{op} failed: {exc}") from exc
