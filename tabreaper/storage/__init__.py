"""Key-value persistence for tabreaper."""

from .database import DatabaseManager
from .kv import LOCAL_AREA, SYNC_AREA, KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore

__all__ = [
    "DatabaseManager",
    "KeyValueStore",
    "LOCAL_AREA",
    "MemoryKeyValueStore",
    "SYNC_AREA",
    "SqlKeyValueStore",
]
