"""In-process row store.

Dict-backed implementation of :class:`~tablecache.protocols.RowStore`
with the same expiration rules as the SQL store. Used by tests and by
``memory://`` connection targets; nothing is shared across processes.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any

from tablecache.expiration import renew_expires_at
from tablecache.models import CacheEntry


class MemoryRowStore:
    """Lock-guarded dict of :class:`CacheEntry` rows."""

    def __init__(self) -> None:
        self._rows: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def _renew(self, key: str, now: datetime) -> CacheEntry | None:
        entry = self._rows.get(key)
        if entry is None or entry.is_expired(now):
            return None
        new_expiry = renew_expires_at(entry, now)
        if new_expiry is not None:
            entry = replace(entry, expires_at_time=new_expiry)
            self._rows[key] = entry
        return entry

    def get_and_touch(self, key: str, now: datetime) -> CacheEntry | None:
        with self._lock:
            return self._renew(key, now)

    def touch(self, key: str, now: datetime) -> bool:
        with self._lock:
            return self._renew(key, now) is not None

    def upsert(self, entry: CacheEntry) -> None:
        with self._lock:
            self._rows[entry.id] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._rows.pop(key, None)

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, entry in self._rows.items() if entry.is_expired(now)]
            for key in expired:
                del self._rows[key]
        return len(expired)

    def count(self, now: datetime) -> tuple[int, int]:
        with self._lock:
            expired = sum(1 for entry in self._rows.values() if entry.is_expired(now))
            return len(self._rows) - expired, expired

    def stats(self, now: datetime) -> dict[str, Any]:
        live, expired = self.count(now)
        return {
            "store": self.name,
            "target": "memory://",
            "table": None,
            "live": live,
            "expired": expired,
            "total": live + expired,
        }

    def peek(self, key: str) -> CacheEntry | None:
        """Raw row, expired or not, without renewal."""
        with self._lock:
            return self._rows.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def close(self) -> None:
        with self._lock:
            self._rows.clear()


__all__ = [
    "MemoryRowStore",
]
