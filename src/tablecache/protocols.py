"""
Canonical protocol definitions for tablecache.

Manifesto:
    The cache engine depends on the *shape* of its collaborators, never on
    a concrete driver. ``RowStore`` is the whole contract between the
    engine and persistence; ``Connection`` and ``Cursor`` are the minimal
    DB-API surface the SQL row store needs from a driver.

Architecture:
    ::

        protocols.py
        ├── Cursor       — DB-API cursor (execute, fetchone, fetchall, rowcount)
        ├── Connection   — DB-API connection (cursor, commit, rollback)
        └── RowStore     — logical cache row operations

        RowStore implementations:
        ├── SqlRowStore     (stores/sql.py)    — SQLite / PostgreSQL table
        └── MemoryRowStore  (stores/memory.py) — in-process dict

Guardrails:
    ❌ DON'T: Import sqlite3 or psycopg2 in the cache engine
    ✅ DO: Depend on RowStore and let adapters own the driver

Tags:
    protocol, row-store, connection, database, tablecache

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from tablecache.models import CacheEntry


@runtime_checkable
class Cursor(Protocol):
    """Minimal DB-API cursor."""

    rowcount: int

    def execute(self, sql: str, params: Any = ()) -> Any:
        ...

    def fetchone(self) -> Any:
        ...

    def fetchall(self) -> list:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Connection(Protocol):
    """Minimal DB-API connection (sqlite3, psycopg2)."""

    def cursor(self) -> Cursor:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@runtime_checkable
class RowStore(Protocol):
    """
    Logical cache operations against persisted rows.

    All timestamps are timezone-aware UTC datetimes. Every method is
    atomic on its own; no cross-call locking is implied.
    """

    @property
    def name(self) -> str:
        """Store kind, used in logs and error context."""
        ...

    def get_and_touch(self, key: str, now: datetime) -> CacheEntry | None:
        """Apply the conditional sliding renewal, then read the live row."""
        ...

    def touch(self, key: str, now: datetime) -> bool:
        """Apply the conditional sliding renewal; ``False`` if no live row."""
        ...

    def upsert(self, entry: CacheEntry) -> None:
        """Insert or fully replace the row for ``entry.id``."""
        ...

    def delete(self, key: str) -> None:
        """Delete the row if present."""
        ...

    def delete_expired(self, now: datetime) -> int:
        """Delete every row with ``expires_at_time < now``; return the count."""
        ...

    def stats(self, now: datetime) -> dict[str, Any]:
        """Live/expired row counts and store identity."""
        ...

    def close(self) -> None:
        """Release connections."""
        ...


__all__ = [
    "Cursor",
    "Connection",
    "RowStore",
]
