"""
Row stores.

- :class:`SqlRowStore` - one SQLite or PostgreSQL table, shared by every
  process that points at it.
- :class:`MemoryRowStore` - in-process dict with identical expiration
  semantics.
"""

from .memory import MemoryRowStore
from .sql import DEFAULT_TABLE_NAME, SqlRowStore

__all__ = [
    "DEFAULT_TABLE_NAME",
    "MemoryRowStore",
    "SqlRowStore",
]
