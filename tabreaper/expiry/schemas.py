"""Pydantic schemas and result types for the expiry engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrackedItem(BaseModel):
    """Snapshot of one live host item."""

    id: int
    title: str = ""
    url: str = ""
    pinned: bool = False
    audible: bool = False
    active: bool = False

    @field_validator("title", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class HistoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: str = ""
    url: str = ""
    closed_at: int = Field(alias="closedAt")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("title", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class Badge(BaseModel):
    text: str = ""
    color: Optional[str] = None


FailureKind = Literal["history_append_failed", "host_close_failed"]


@dataclass(slots=True)
class EvictionFailure:
    item_id: int
    kind: FailureKind
    message: str


@dataclass(slots=True)
class SweepReport:
    now_ms: int
    dropped: bool = False
    candidates: int = 0
    evicted: list[int] = field(default_factory=list)
    touched: list[int] = field(default_factory=list)
    skipped_protected: list[int] = field(default_factory=list)
    failures: list[EvictionFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> dict[str, object]:
        return {
            "now_ms": self.now_ms,
            "dropped": self.dropped,
            "candidates": self.candidates,
            "evicted": list(self.evicted),
            "touched": list(self.touched),
            "skipped_protected": list(self.skipped_protected),
            "failures": [
                {"item_id": f.item_id, "kind": f.kind, "message": f.message}
                for f in self.failures
            ],
        }
