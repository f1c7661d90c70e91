"""
Database adapters for the SQL row store.

Each adapter owns one driver (sqlite3 or psycopg2), its connection
lifecycle, transactions and the translation of driver exceptions into
:class:`~tablecache.errors.StoreUnavailableError` /
:class:`~tablecache.errors.QueryError`.

Usage:
    from tablecache.adapters import adapter_from_url

    adapter = adapter_from_url("sqlite:///cache.db")
    with adapter.transaction() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1")
"""

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_from_url, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Base
    "DatabaseAdapter",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "adapter_from_url",
]
