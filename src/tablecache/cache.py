"""
Cache engine.

``TableCache`` is the public entry point: a shared, persistent
key/value cache whose rows live in a relational table. Every operation
validates its arguments, performs one atomic row-store call, then asks
the sweeper whether a background sweep of expired rows is due.

Manifesto:
    The engine keeps no copy of cached data between calls. The row store
    owns all state; the only thing the engine remembers is when the last
    sweep was claimed. That is what makes many processes on many hosts
    safe to point at the same table.

    - **Stateless reads:** every ``get`` goes to the store
    - **Atomic renewal:** sliding expiry is extended by the store's own
      conditional write, in the same step as the read
    - **Never blocked by sweeps:** the sweep is queued, never awaited

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                          TableCache                            │
        │  get / get_entry / set / refresh / remove / delete_expired     │
        │  aget / aget_entry / aset / arefresh / aremove / adelete_expired│
        └───────────────┬────────────────────────────────┬──────────────┘
                        │                                │
                        ▼                                ▼
              ┌──────────────────┐             ┌──────────────────────┐
              │ expiration.py    │             │ ExpirationSweeper    │
              │ resolve / renew  │             │ maybe_trigger()      │
              └──────────────────┘             └──────────┬───────────┘
                        │                                 │
                        ▼                                 ▼
              ┌─────────────────────────────────────────────────────┐
              │ RowStore: SqlRowStore (SQLite / PostgreSQL)          │
              │           MemoryRowStore                             │
              └─────────────────────────────────────────────────────┘

Examples:
    >>> from tablecache import TableCache, CacheEntryOptions
    >>> from tablecache.stores import MemoryRowStore
    >>> with TableCache(MemoryRowStore()) as cache:
    ...     _ = cache.set("greeting", b"hello", CacheEntryOptions.sliding(60))
    ...     cache.get("greeting")
    b'hello'

Guardrails:
    ❌ DON'T: Cache values in process memory between calls
    ✅ DO: Let every read renew and fetch through the row store

    ❌ DON'T: Await the sweep from a foreground call
    ✅ DO: ``maybe_trigger()`` and return

Tags:
    cache, engine, sliding-expiration, absolute-expiration, async, tablecache

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor
from datetime import timedelta
from typing import Any

from tablecache.clock import Clock, SystemClock
from tablecache.errors import InvalidConfigError, InvalidKeyError, InvalidValueError
from tablecache.expiration import resolve_expiration
from tablecache.logging import get_logger
from tablecache.models import CacheEntry, CacheEntryOptions
from tablecache.protocols import RowStore
from tablecache.sweeper import DEFAULT_SWEEP_INTERVAL, ExpirationSweeper

logger = get_logger(__name__)

# Width of the id column.
MAX_KEY_LENGTH = 449


def validate_key(key: Any) -> str:
    """Return ``key`` unchanged or raise :class:`InvalidKeyError`."""
    if key is None:
        raise InvalidKeyError("Cache key must not be None")
    if not isinstance(key, str):
        raise InvalidKeyError(f"Cache key must be a str, got {type(key).__name__}", value=key)
    if not key:
        raise InvalidKeyError("Cache key must not be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidKeyError(
            f"Cache key is {len(key)} characters, the maximum is {MAX_KEY_LENGTH}",
            value=key[:32] + "...",
        )
    return key


def normalize_value(value: Any) -> bytes:
    """Bytes-like payload as ``bytes``, or raise :class:`InvalidValueError`."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if value is None:
        raise InvalidValueError("Cache value must not be None")
    raise InvalidValueError(
        f"Cache value must be bytes-like, got {type(value).__name__}",
        value=type(value).__name__,
    )


class TableCache:
    """Persistent shared cache over a :class:`~tablecache.protocols.RowStore`.

    Args:
        store: Row store holding the entries.
        sweep_interval: Minimum time between background sweeps
            (default 30 minutes, floor 5 minutes).
        clock: Time source; ``SystemClock`` by default.
        default_sliding_expiration: Applied to ``set`` calls that request
            no expiration. Without it such calls are rejected.
        executor: Executor for background sweeps. A single-thread
            executor is created and owned by the sweeper when omitted.

    Raises:
        InvalidConfigError: ``sweep_interval`` below the floor, or a
            non-positive ``default_sliding_expiration``.
    """

    def __init__(
        self,
        store: RowStore,
        *,
        sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Clock | None = None,
        default_sliding_expiration: timedelta | None = None,
        executor: Executor | None = None,
    ) -> None:
        if default_sliding_expiration is not None and default_sliding_expiration <= timedelta(0):
            raise InvalidConfigError(
                "default_sliding_expiration",
                default_sliding_expiration,
                "default_sliding_expiration must be positive",
            )
        self._store = store
        self._clock = clock or SystemClock()
        self._default_sliding = default_sliding_expiration
        self._sweeper = ExpirationSweeper(
            store,
            interval=sweep_interval,
            clock=self._clock,
            executor=executor,
        )
        self._closed = False

    # -- Properties --------------------------------------------------------

    @property
    def store(self) -> RowStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def sweeper(self) -> ExpirationSweeper:
        return self._sweeper

    @property
    def default_sliding_expiration(self) -> timedelta | None:
        return self._default_sliding

    def __repr__(self) -> str:
        return f"TableCache(store={self._store!r}, sweep_interval={self._sweeper.interval})"

    # -- Primary actions (no sweep trigger) --------------------------------

    def _get_entry(self, key: str) -> CacheEntry | None:
        key = validate_key(key)
        entry = self._store.get_and_touch(key, self._clock.now())
        logger.debug("cache.get", key=key, hit=entry is not None)
        return entry

    def _set(self, key: str, value: Any, options: CacheEntryOptions | None) -> CacheEntry:
        key = validate_key(key)
        payload = normalize_value(value)
        now = self._clock.now()
        resolved = resolve_expiration(options, now, default_sliding=self._default_sliding)
        entry = CacheEntry(
            id=key,
            value=payload,
            expires_at_time=resolved.expires_at_time,
            sliding_expiration_seconds=resolved.sliding_expiration_seconds,
            absolute_expiration=resolved.absolute_expiration,
        )
        self._store.upsert(entry)
        logger.debug(
            "cache.set",
            key=key,
            size=len(payload),
            expires_at_time=entry.expires_at_time.isoformat(),
        )
        return entry

    def _refresh(self, key: str) -> bool:
        key = validate_key(key)
        return self._store.touch(key, self._clock.now())

    def _remove(self, key: str) -> None:
        key = validate_key(key)
        self._store.delete(key)
        logger.debug("cache.remove", key=key)

    # -- Blocking API ------------------------------------------------------

    def get(self, key: str) -> bytes | None:
        """Value for ``key``, renewing its sliding expiration; ``None`` if absent or expired."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        """Like :meth:`get`, returning the full row after renewal."""
        entry = self._get_entry(key)
        self._sweeper.maybe_trigger()
        return entry

    def set(self, key: str, value: bytes, options: CacheEntryOptions | None = None) -> CacheEntry:
        """Insert or replace ``key``.

        Raises:
            InvalidKeyError: Bad key.
            InvalidValueError: ``value`` is not bytes-like.
            InvalidOptionsError: Contradictory, non-positive or past expiration,
                or no expiration and no default sliding expiration.
        """
        entry = self._set(key, value, options)
        self._sweeper.maybe_trigger()
        return entry

    def refresh(self, key: str) -> bool:
        """Renew the sliding expiration without reading the value.

        Returns:
            ``False`` if ``key`` is absent or expired.
        """
        found = self._refresh(key)
        self._sweeper.maybe_trigger()
        return found

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        self._remove(key)
        self._sweeper.maybe_trigger()

    def delete_expired(self) -> int:
        """Sweep expired rows now and return how many were deleted."""
        return self._sweeper.sweep()

    def stats(self) -> dict[str, Any]:
        stats = self._store.stats(self._clock.now())
        stats["sweeper"] = self._sweeper.health()
        return stats

    # -- Suspendable API ---------------------------------------------------
    # The store call runs on a worker thread; the sweep trigger only queues
    # work on the sweeper's executor and returns.

    async def aget(self, key: str) -> bytes | None:
        entry = await self.aget_entry(key)
        return entry.value if entry is not None else None

    async def aget_entry(self, key: str) -> CacheEntry | None:
        entry = await asyncio.to_thread(self._get_entry, key)
        self._sweeper.maybe_trigger()
        return entry

    async def aset(
        self, key: str, value: bytes, options: CacheEntryOptions | None = None
    ) -> CacheEntry:
        entry = await asyncio.to_thread(self._set, key, value, options)
        self._sweeper.maybe_trigger()
        return entry

    async def arefresh(self, key: str) -> bool:
        found = await asyncio.to_thread(self._refresh, key)
        self._sweeper.maybe_trigger()
        return found

    async def aremove(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)
        self._sweeper.maybe_trigger()

    async def adelete_expired(self) -> int:
        return await asyncio.to_thread(self._sweeper.sweep)

    # -- Lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Shut down the sweeper and release the row store."""
        if self._closed:
            return
        self._closed = True
        self._sweeper.close(wait=True)
        self._store.close()

    async def aclose(self) -> None:
        await asyncio.to_thread(self.close)

    def __enter__(self) -> TableCache:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> TableCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = [
    "MAX_KEY_LENGTH",
    "TableCache",
    "normalize_value",
    "validate_key",
]
