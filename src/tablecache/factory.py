"""
Factory functions that build a ready cache from settings.

Manifesto:
    Applications should wire a cache with one call. ``create_cache()``
    validates configuration, picks the row store from the connection
    target, optionally creates the table and hands back a
    :class:`~tablecache.cache.TableCache`. Every configuration problem is
    raised here, at construction time, never on a later ``get``.

Features:
    - ``build_store()`` — ``RowStore`` from a connection target
    - ``create_cache()`` — ``TableCache`` from ``CacheSettings`` plus overrides

Tags:
    tablecache, configuration, factory-pattern, dependency-wiring

Doc-Types:
    api-reference
"""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Any

from tablecache.adapters.registry import adapter_from_url
from tablecache.cache import TableCache
from tablecache.clock import Clock
from tablecache.config.settings import CacheSettings, get_settings
from tablecache.errors import MissingConfigError
from tablecache.logging import get_logger
from tablecache.protocols import RowStore
from tablecache.stores.memory import MemoryRowStore
from tablecache.stores.sql import SqlRowStore

logger = get_logger(__name__)


def build_store(settings: CacheSettings, *, verify: bool = False) -> RowStore:
    """Create the row store named by ``settings.connection_target``.

    ``memory://`` gives a process-local :class:`MemoryRowStore`; SQL
    targets give a :class:`SqlRowStore`. With ``create_table`` set the
    table is created, with ``verify`` its existence is checked.
    """
    target = settings.connection_target.strip()
    if not target:
        raise MissingConfigError(
            "connection_target",
            "Missing required configuration: connection_target (TABLECACHE_CONNECTION_TARGET)",
        )
    if not settings.table_name or not settings.table_name.strip():
        raise MissingConfigError("table_name")

    if settings.is_memory:
        return MemoryRowStore()

    adapter = adapter_from_url(
        target,
        pool_size=settings.pool_size,
        connect_timeout=settings.connect_timeout,
    )
    store = SqlRowStore(adapter, schema=settings.schema_name, table=settings.table_name)

    try:
        if settings.create_table:
            store.ensure_table()
        elif verify:
            store.verify_table()
    except Exception:
        store.close()
        raise
    return store


def create_cache(
    settings: CacheSettings | None = None,
    *,
    clock: Clock | None = None,
    executor: Executor | None = None,
    verify: bool = False,
    **overrides: Any,
) -> TableCache:
    """Create a :class:`TableCache` from settings.

    Usage:
        cache = create_cache()                                  # env / .env
        cache = create_cache(connection_target="sqlite:///c.db", create_table=True)
    """
    settings = settings or get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)

    store = build_store(settings, verify=verify)
    try:
        cache = TableCache(
            store,
            sweep_interval=settings.sweep_interval,
            clock=clock,
            default_sliding_expiration=settings.default_sliding_expiration,
            executor=executor,
        )
    except Exception:
        store.close()
        raise

    logger.info(
        "cache.created",
        store=store.name,
        table=getattr(store, "qualified_table", None),
        sweep_interval_seconds=settings.sweep_interval.total_seconds(),
    )
    return cache


__all__ = [
    "build_store",
    "create_cache",
]
