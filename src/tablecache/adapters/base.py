"""Database adapter base class.

Manifesto:
    Every adapter shares the same lifecycle (connect/disconnect), the
    same transaction contract and the same error translation. The
    abstract base class defines that contract so the SQL row store never
    depends on a specific driver.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``transaction()``
    - ``execute()`` / ``query()`` helpers that run inside a transaction
    - ``translate_error()`` maps driver exceptions onto the cache hierarchy
    - Context-manager protocol for connection lifecycle

Tags:
    tablecache, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tablecache.dialect import Dialect, get_dialect
from tablecache.errors import CacheError, QueryError, StoreUnavailableError
from tablecache.protocols import Connection

from .types import DatabaseConfig, DatabaseType


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses own the driver import, the connection (or pool) and the
    decision of which driver exceptions mean "store unavailable".
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseAdapter:
        """Build an adapter from a parsed :class:`DatabaseConfig`."""
        raise NotImplementedError(f"{cls.__name__} cannot be built from a DatabaseConfig")

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to database."""
        ...

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Context manager for a transaction: commit on success, rollback on error."""
        ...

    @abstractmethod
    def is_unavailable_error(self, exc: BaseException) -> bool:
        """Whether ``exc`` is a connection/transport failure."""
        ...

    @abstractmethod
    def is_driver_error(self, exc: BaseException) -> bool:
        """Whether ``exc`` was raised by the database driver."""
        ...

    def translate_error(self, exc: BaseException, message: str) -> CacheError:
        """Map a driver exception to :class:`StoreUnavailableError` or :class:`QueryError`."""
        if isinstance(exc, CacheError):
            return exc
        cause = exc if isinstance(exc, Exception) else None
        if self.is_unavailable_error(exc) or isinstance(exc, (ConnectionError, TimeoutError)):
            return StoreUnavailableError(f"{message}: {exc}", cause=cause)
        return QueryError(f"{message}: {exc}", cause=cause)

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute one statement in its own transaction; return ``rowcount``."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params or {})
                return cursor.rowcount
            finally:
                cursor.close()

    def query(self, sql: str, params: dict[str, Any] | None = None) -> list[tuple]:
        """Execute a query in its own transaction and return all rows."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params or {})
                return [tuple(row) for row in cursor.fetchall()]
            finally:
                cursor.close()

    def describe(self) -> str:
        """Connection target with credentials masked, for logs."""
        return self._config.to_connection_string()

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
]
