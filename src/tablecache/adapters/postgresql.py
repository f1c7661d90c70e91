"""PostgreSQL database adapter."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tablecache.errors import ConfigurationError, StoreUnavailableError
from tablecache.logging import get_logger
from tablecache.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Uses a psycopg2 ``ThreadedConnectionPool``; every transaction borrows
    one connection and returns it afterwards. Suitable for production
    deployments where many hosts share the cache table.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 5,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> PostgreSQLAdapter:
        return cls(
            host=config.host,
            port=config.port,
            database=config.database,
            username=config.username,
            password=config.password,
            pool_size=config.pool_size,
            connect_timeout=config.connect_timeout,
            **config.options,
        )

    def connect(self) -> None:
        """Open the connection pool."""
        try:
            import psycopg2
            import psycopg2.pool
        except ImportError:
            raise ConfigurationError(
                "psycopg2 is required for PostgreSQL. Install with: pip install tablecache[postgresql]"
            ) from None

        if self._pool is not None:
            return

        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self._config.pool_size,
                host=self._config.host,
                port=self._config.port,
                database=self._config.database,
                user=self._config.username,
                password=self._config.password,
                connect_timeout=self._config.connect_timeout,
                **self._config.options,
            )
            self._connected = True
        except psycopg2.Error as e:
            raise StoreUnavailableError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e

        logger.debug(
            "postgresql.connected",
            target=self.describe(),
            pool_size=self._config.pool_size,
        )

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._connected = False

    def get_connection(self) -> Connection:
        """Borrow a connection from the pool."""
        if not self._pool:
            self.connect()
        return self._pool.getconn()

    def _return_connection(self, conn: Any, *, close: bool = False) -> None:
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn, close=close)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager."""
        conn = self.get_connection()
        broken = False
        try:
            yield conn
            conn.commit()
        except BaseException as exc:
            broken = self.is_unavailable_error(exc)
            if not broken:
                conn.rollback()
            raise
        finally:
            self._return_connection(conn, close=broken)

    def is_unavailable_error(self, exc: BaseException) -> bool:
        import psycopg2
        import psycopg2.pool

        return isinstance(
            exc,
            (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.pool.PoolError),
        )

    def is_driver_error(self, exc: BaseException) -> bool:
        import psycopg2
        import psycopg2.pool

        return isinstance(exc, (psycopg2.Error, psycopg2.pool.PoolError))


__all__ = [
    "PostgreSQLAdapter",
]
