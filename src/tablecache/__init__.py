"""
tablecache — a shared, persistent key/value cache backed by a database table.

Entries carry sliding and/or absolute expiration. Reads atomically renew
sliding entries in the database, so any number of processes can share
one table; a rate-limited background sweep deletes expired rows.

Quick start::

    from datetime import timedelta
    from tablecache import CacheEntryOptions, create_cache

    cache = create_cache(connection_target="sqlite:///cache.db", create_table=True)
    cache.set("session:42", b"...", CacheEntryOptions(sliding_expiration=timedelta(minutes=20)))
    cache.get("session:42")
"""

from tablecache.cache import MAX_KEY_LENGTH, TableCache
from tablecache.clock import Clock, ManualClock, SystemClock
from tablecache.config import CacheSettings, clear_settings_cache, get_settings
from tablecache.errors import (
    CacheError,
    ConfigurationError,
    InvalidConfigError,
    InvalidKeyError,
    InvalidOptionsError,
    InvalidValueError,
    MissingConfigError,
    QueryError,
    StoreUnavailableError,
    SweepFailureError,
    ValidationError,
)
from tablecache.factory import build_store, create_cache
from tablecache.models import CacheEntry, CacheEntryOptions
from tablecache.stores import MemoryRowStore, SqlRowStore
from tablecache.sweeper import DEFAULT_SWEEP_INTERVAL, MINIMUM_SWEEP_INTERVAL, ExpirationSweeper

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "TableCache",
    "MAX_KEY_LENGTH",
    "ExpirationSweeper",
    "DEFAULT_SWEEP_INTERVAL",
    "MINIMUM_SWEEP_INTERVAL",
    # Model
    "CacheEntry",
    "CacheEntryOptions",
    # Stores
    "MemoryRowStore",
    "SqlRowStore",
    # Clock
    "Clock",
    "SystemClock",
    "ManualClock",
    # Config
    "CacheSettings",
    "get_settings",
    "clear_settings_cache",
    "build_store",
    "create_cache",
    # Errors
    "CacheError",
    "ValidationError",
    "InvalidKeyError",
    "InvalidOptionsError",
    "InvalidValueError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "StoreUnavailableError",
    "QueryError",
    "SweepFailureError",
]
