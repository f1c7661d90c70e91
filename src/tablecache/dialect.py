"""SQL dialect abstraction for the cache table.

Provides a ``Dialect`` protocol and concrete implementations for every
supported database backend. The SQL row store builds all of its
statements from ``Dialect`` fragments (named parameters, identifier
quoting, timestamp arithmetic, column types, upserts) without importing
or referencing a database driver.

Manifesto:
    The expiration rules must behave identically on SQLite (dev, tests,
    single host) and PostgreSQL (shared production tier). The backends
    disagree on parameter style, on how timestamps are stored and on how
    to add seconds to a timestamp; the dialect hides exactly those
    differences and nothing else.

    - **One interface:** Dialect protocol for all SQL generation
    - **Zero coupling:** The store never imports database drivers
    - **Exact time:** SQLite stores epoch microseconds, PostgreSQL TIMESTAMPTZ

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │                       CacheQueries (queries.py)               │
    │  touch / get / upsert / delete / delete_expired / create      │
    └──────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌────────────────────────────┐   ┌─────────────────────────────┐
    │ SQLiteDialect               │   │ PostgreSQLDialect            │
    │ :name params                │   │ %(name)s params              │
    │ INTEGER epoch microseconds  │   │ TIMESTAMPTZ                  │
    │ ts + CAST(s*1e6 AS INTEGER) │   │ ts + s * INTERVAL '1 second' │
    └────────────────────────────┘   └─────────────────────────────┘

Examples:
    >>> from tablecache.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.param("id")
    ':id'
    >>> d.qualified_table("main", "cache_entries")
    '"main"."cache_entries"'

Guardrails:
    ❌ DON'T: Write backend-specific SQL in the row store
    ✅ DO: Add a Dialect method and use it from CacheQueries

Tags:
    dialect, sql, abstraction, portability, database, tablecache

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) that is valid for
    the target database, or converts a Python value to/from its stored
    representation.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    @property
    def default_schema(self) -> str:
        """Schema used when none is configured."""
        ...

    # -- Parameters / identifiers -----------------------------------------

    def param(self, name: str) -> str:
        """Named parameter placeholder."""
        ...

    def quote_identifier(self, identifier: str) -> str:
        ...

    def qualified_table(self, schema: str, table: str) -> str:
        ...

    # -- Timestamp arithmetic ---------------------------------------------

    def add_seconds(self, timestamp_sql: str, seconds_sql: str) -> str:
        """SQL expression: ``timestamp + seconds``."""
        ...

    def seconds_between(self, later_sql: str, earlier_sql: str) -> str:
        """SQL expression: ``later - earlier`` in seconds."""
        ...

    def to_db_timestamp(self, value: datetime | None) -> Any:
        """Python UTC datetime → stored representation."""
        ...

    def from_db_timestamp(self, value: Any) -> datetime | None:
        """Stored representation → Python UTC datetime."""
        ...

    def to_db_binary(self, value: bytes) -> Any:
        ...

    def from_db_binary(self, value: Any) -> bytes:
        ...

    # -- DML helpers -------------------------------------------------------

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        """``INSERT … ON CONFLICT (keys) DO UPDATE SET …`` with named params."""
        ...

    # -- DDL helpers -------------------------------------------------------

    def text_type(self) -> str:
        ...

    def binary_type(self) -> str:
        ...

    def timestamp_type(self) -> str:
        ...

    def float_type(self) -> str:
        ...

    def create_index(self, schema: str, table: str, index: str, column: str) -> str:
        ...

    def table_exists_query(self, schema: str) -> str:
        """Query taking a ``table`` param (and ``schema`` where supported); returns rows if present."""
        ...


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _upsert(dialect: Dialect, table: str, columns: list[str], key_columns: list[str]) -> str:
    cols = ", ".join(columns)
    params = ", ".join(dialect.param(c) for c in columns)
    keys = ", ".join(key_columns)
    update_cols = [c for c in columns if c not in key_columns]
    updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
    return (
        f"INSERT INTO {table} ({cols}) VALUES ({params}) "
        f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
    )


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect — ``:name`` params, timestamps as INTEGER epoch microseconds."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def default_schema(self) -> str:
        return "main"

    # -- Parameters / identifiers -----------------------------------------

    def param(self, name: str) -> str:
        return f":{name}"

    def quote_identifier(self, identifier: str) -> str:
        return _quote(identifier)

    def qualified_table(self, schema: str, table: str) -> str:
        return f"{_quote(schema)}.{_quote(table)}"

    # -- Timestamps --------------------------------------------------------

    def add_seconds(self, timestamp_sql: str, seconds_sql: str) -> str:
        return f"({timestamp_sql} + CAST(({seconds_sql}) * 1000000 AS INTEGER))"

    def seconds_between(self, later_sql: str, earlier_sql: str) -> str:
        return f"(({later_sql} - {earlier_sql}) / 1000000.0)"

    def to_db_timestamp(self, value: datetime | None) -> int | None:
        if value is None:
            return None
        return (value - _EPOCH) // _MICROSECOND

    def from_db_timestamp(self, value: Any) -> datetime | None:
        if value is None:
            return None
        return _EPOCH + timedelta(microseconds=int(value))

    def to_db_binary(self, value: bytes) -> bytes:
        return value

    def from_db_binary(self, value: Any) -> bytes:
        return bytes(value)

    # -- DML ---------------------------------------------------------------

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        return _upsert(self, table, columns, key_columns)

    # -- DDL ---------------------------------------------------------------

    def text_type(self) -> str:
        return "TEXT"

    def binary_type(self) -> str:
        return "BLOB"

    def timestamp_type(self) -> str:
        return "INTEGER"

    def float_type(self) -> str:
        return "REAL"

    def create_index(self, schema: str, table: str, index: str, column: str) -> str:
        # SQLite qualifies the index name, not the table, with the schema
        return (
            f"CREATE INDEX IF NOT EXISTS {_quote(schema)}.{_quote(index)} "
            f"ON {_quote(table)} ({column})"
        )

    # -- Introspection -----------------------------------------------------

    def table_exists_query(self, schema: str) -> str:
        # each attached schema carries its own sqlite_master
        return f"SELECT name FROM {_quote(schema)}.sqlite_master WHERE type = 'table' AND name = :table"


class PostgreSQLDialect:
    """PostgreSQL dialect — ``%(name)s`` params (psycopg2), TIMESTAMPTZ columns."""

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def default_schema(self) -> str:
        return "public"

    def param(self, name: str) -> str:
        return f"%({name})s"

    def quote_identifier(self, identifier: str) -> str:
        return _quote(identifier)

    def qualified_table(self, schema: str, table: str) -> str:
        return f"{_quote(schema)}.{_quote(table)}"

    def add_seconds(self, timestamp_sql: str, seconds_sql: str) -> str:
        return f"({timestamp_sql} + ({seconds_sql}) * INTERVAL '1 second')"

    def seconds_between(self, later_sql: str, earlier_sql: str) -> str:
        return f"EXTRACT(EPOCH FROM ({later_sql} - {earlier_sql}))"

    def to_db_timestamp(self, value: datetime | None) -> datetime | None:
        return value

    def from_db_timestamp(self, value: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def to_db_binary(self, value: bytes) -> bytes:
        return value

    def from_db_binary(self, value: Any) -> bytes:
        # psycopg2 returns memoryview for BYTEA
        return bytes(value)

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        return _upsert(self, table, columns, key_columns)

    def text_type(self) -> str:
        return "TEXT"

    def binary_type(self) -> str:
        return "BYTEA"

    def timestamp_type(self) -> str:
        return "TIMESTAMPTZ"

    def float_type(self) -> str:
        return "DOUBLE PRECISION"

    def create_index(self, schema: str, table: str, index: str, column: str) -> str:
        return (
            f"CREATE INDEX IF NOT EXISTS {_quote(index)} "
            f"ON {self.qualified_table(schema, table)} ({column})"
        )

    def table_exists_query(self, schema: str) -> str:  # noqa: ARG002
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = %(schema)s AND table_name = %(table)s"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "register_dialect",
]
