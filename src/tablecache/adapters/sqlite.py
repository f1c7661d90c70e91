"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tablecache.errors import StoreUnavailableError
from tablecache.logging import get_logger
from tablecache.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)

# OperationalError messages that mean the file is unreachable or contended,
# as opposed to a bad statement or missing table.
_UNAVAILABLE_MARKERS = (
    "database is locked",
    "unable to open",
    "disk i/o error",
    "database is busy",
    "readonly database",
    "closed database",
)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with one connection shared by all
    threads; a lock serialises transactions on it. Suitable for:
    - Development and testing
    - Single-host deployments where several processes share one file
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        readonly: bool = False,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            readonly=readonly,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SQLiteAdapter:
        return cls(
            config.path or ":memory:",
            readonly=config.readonly,
            timeout=float(config.connect_timeout),
            **config.options,
        )

    def connect(self) -> None:
        """Connect to SQLite database."""
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")

        with self._lock:
            if self._conn is not None:
                return
            try:
                self._conn = sqlite3.connect(
                    path,
                    timeout=self._timeout,
                    check_same_thread=False,
                    uri=uri,
                )
                if self._config.readonly:
                    self._conn.execute("PRAGMA query_only = ON")
                self._connected = True
            except sqlite3.Error as e:
                raise StoreUnavailableError(
                    f"Failed to connect to SQLite: {e}",
                    cause=e,
                ) from e

        logger.debug("sqlite.connected", path=path)

    def disconnect(self) -> None:
        """Close SQLite connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._connected = False

    def get_connection(self) -> Connection:
        """Get the shared SQLite connection."""
        if self._conn is None:
            self.connect()
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager, serialised across threads."""
        with self._lock:
            conn = self.get_connection()
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def is_unavailable_error(self, exc: BaseException) -> bool:
        if isinstance(exc, (sqlite3.OperationalError, sqlite3.ProgrammingError)):
            text = str(exc).lower()
            return any(marker in text for marker in _UNAVAILABLE_MARKERS)
        return isinstance(exc, sqlite3.InterfaceError)

    def is_driver_error(self, exc: BaseException) -> bool:
        return isinstance(exc, sqlite3.Error)


__all__ = [
    "SQLiteAdapter",
]
