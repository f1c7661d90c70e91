"""Relational row store.

``SqlRowStore`` persists cache rows in one table through a
:class:`~tablecache.adapters.DatabaseAdapter`. Each logical operation is
one transaction; read-with-renewal runs the conditional UPDATE and the
SELECT in the same transaction so the returned row reflects the renewal.

Manifesto:
    The renewal predicate lives in the UPDATE's WHERE clause, not in
    Python. Any number of processes can touch the same row concurrently;
    each conditional write converges on ``min(now + sliding, absolute)``
    and a row that has already expired is never brought back.

Architecture:
    ::

        TableCache ──► SqlRowStore ──► CacheQueries (SQL text)
                            │
                            └──► DatabaseAdapter.transaction()
                                    ├── SQLiteAdapter
                                    └── PostgreSQLAdapter

Guardrails:
    ❌ DON'T: Read a row, decide in Python, then write it back
    ✅ DO: Let the database apply the conditional UPDATE atomically

    ❌ DON'T: Leak sqlite3 / psycopg2 exceptions to callers
    ✅ DO: Translate through ``adapter.translate_error()``

Tags:
    row-store, sql, sqlite, postgresql, expiration, tablecache

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from tablecache.adapters.base import DatabaseAdapter
from tablecache.errors import CacheError, ConfigurationError, InvalidConfigError
from tablecache.logging import get_logger
from tablecache.models import CacheEntry
from tablecache.queries import CacheQueries

logger = get_logger(__name__)

DEFAULT_TABLE_NAME = "cache_entries"


class SqlRowStore:
    """Cache rows in a SQLite or PostgreSQL table."""

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        schema: str | None = None,
        table: str = DEFAULT_TABLE_NAME,
    ):
        if not table or not table.strip():
            raise InvalidConfigError("table_name", table, "Table name must not be empty")
        if schema is not None and not schema.strip():
            raise InvalidConfigError("schema_name", schema, "Schema name must not be empty")

        self._adapter = adapter
        self._dialect = adapter.dialect
        self._schema = schema or self._dialect.default_schema
        self._table = table
        self._queries = CacheQueries(self._dialect, self._schema, self._table)

    # -- Introspection -----------------------------------------------------

    @property
    def name(self) -> str:
        return self._dialect.name

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def queries(self) -> CacheQueries:
        return self._queries

    @property
    def qualified_table(self) -> str:
        return self._queries.qualified_table

    def __repr__(self) -> str:
        return f"SqlRowStore({self._adapter.describe()!r}, table={self.qualified_table!r})"

    # -- Error translation -------------------------------------------------

    @contextmanager
    def _translate(self, operation: str, key: str | None = None) -> Iterator[None]:
        try:
            yield
        except CacheError as exc:
            raise exc.with_context(
                operation=operation, key=key, table=self.qualified_table, store=self.name
            )
        except Exception as exc:
            if not (self._adapter.is_driver_error(exc) or isinstance(exc, (ConnectionError, TimeoutError))):
                raise
            error = self._adapter.translate_error(exc, f"Cache {operation} failed").with_context(
                operation=operation, key=key, table=self.qualified_table, store=self.name
            )
            logger.warning("store.operation_failed", **error.to_dict())
            raise error from exc

    def _params(self, **values: Any) -> dict[str, Any]:
        params = dict(values)
        if "now" in params:
            params["now"] = self._dialect.to_db_timestamp(params["now"])
        return params

    def _to_entry(self, row: Any) -> CacheEntry | None:
        if row is None:
            return None
        key, value, expires_at_time, sliding, absolute = row
        return CacheEntry(
            id=key,
            value=self._dialect.from_db_binary(value),
            expires_at_time=self._dialect.from_db_timestamp(expires_at_time),
            sliding_expiration_seconds=float(sliding) if sliding is not None else None,
            absolute_expiration=self._dialect.from_db_timestamp(absolute),
        )

    # -- Row operations ----------------------------------------------------

    def get_and_touch(self, key: str, now: datetime) -> CacheEntry | None:
        params = self._params(id=key, now=now)
        with self._translate("get", key), self._adapter.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(self._queries.touch, params)
                cursor.execute(self._queries.get_item, params)
                row = cursor.fetchone()
            finally:
                cursor.close()
        return self._to_entry(row)

    def touch(self, key: str, now: datetime) -> bool:
        params = self._params(id=key, now=now)
        with self._translate("refresh", key), self._adapter.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(self._queries.touch, params)
                if cursor.rowcount > 0:
                    return True
                # zero rows also covers live entries that need no renewal
                cursor.execute(self._queries.item_exists, params)
                return cursor.fetchone() is not None
            finally:
                cursor.close()

    def upsert(self, entry: CacheEntry) -> None:
        params = {
            "id": entry.id,
            "value": self._dialect.to_db_binary(entry.value),
            "expires_at_time": self._dialect.to_db_timestamp(entry.expires_at_time),
            "sliding_expiration_seconds": entry.sliding_expiration_seconds,
            "absolute_expiration": self._dialect.to_db_timestamp(entry.absolute_expiration),
        }
        with self._translate("set", entry.id):
            self._adapter.execute(self._queries.upsert, params)

    def delete(self, key: str) -> None:
        with self._translate("remove", key):
            self._adapter.execute(self._queries.delete, {"id": key})

    def delete_expired(self, now: datetime) -> int:
        with self._translate("delete_expired"):
            deleted = self._adapter.execute(self._queries.delete_expired, self._params(now=now))
        return max(deleted, 0)

    def count(self, now: datetime) -> tuple[int, int]:
        """``(live, expired)`` row counts as of ``now``."""
        with self._translate("stats"):
            rows = self._adapter.query(self._queries.count_entries, self._params(now=now))
        live, expired = rows[0] if rows else (0, 0)
        return int(live or 0), int(expired or 0)

    def stats(self, now: datetime) -> dict[str, Any]:
        live, expired = self.count(now)
        return {
            "store": self.name,
            "target": self._adapter.describe(),
            "table": self.qualified_table,
            "live": live,
            "expired": expired,
            "total": live + expired,
        }

    # -- Table management --------------------------------------------------

    def table_exists(self) -> bool:
        with self._translate("verify_table"):
            rows = self._adapter.query(
                self._queries.table_info,
                {"schema": self._schema, "table": self._table},
            )
        return bool(rows)

    def ensure_table(self) -> None:
        """Create the cache table and its expiry index if missing."""
        with self._translate("create_table"), self._adapter.transaction() as conn:
            cursor = conn.cursor()
            try:
                for statement in self._queries.create_table:
                    cursor.execute(statement)
            finally:
                cursor.close()
        logger.info("store.table_ready", table=self.qualified_table, store=self.name)

    def verify_table(self) -> None:
        """Raise :class:`ConfigurationError` if the cache table does not exist."""
        if not self.table_exists():
            raise ConfigurationError(
                f"Cache table {self.qualified_table} does not exist; "
                "create it with `tablecache init` or create_table=True"
            ).with_context(table=self.qualified_table, store=self.name)

    def close(self) -> None:
        self._adapter.disconnect()


__all__ = [
    "SqlRowStore",
    "DEFAULT_TABLE_NAME",
]
