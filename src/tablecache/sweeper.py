"""Rate-limited background sweep of expired rows.

┌──────────────────────────────────────────────────────────────────────────────┐
│  EXPIRATION SWEEPER                                                           │
│                                                                               │
│   foreground op (get/set/refresh/remove)                                     │
│        │                                                                      │
│        ▼                                                                      │
│   maybe_trigger()                                                             │
│        │  now = clock.now()                                                   │
│        │  with lock:                                                          │
│        │     if last_sweep_time and now - last_sweep_time <= interval:        │
│        │         return False                                                 │
│        │     last_sweep_time = now          ◄── slot claimed before work      │
│        │     executor.submit(_run)          ◄── never joined by the caller    │
│        ▼                                                                      │
│   ┌──────────────────────────────────────────────────────┐                   │
│   │   tablecache-sweep worker thread                      │                   │
│   │     sweep(): store.delete_expired(clock.now())        │                   │
│   │     failure → SweepFailureError logged, not raised    │                   │
│   └──────────────────────────────────────────────────────┘                   │
│                                                                               │
│  Rules:                                                                       │
│  1. Interval floor of 5 minutes, default 30 minutes                          │
│  2. First foreground operation after construction is eligible                │
│  3. One worker thread: overlapping triggers queue, they never run in parallel│
└──────────────────────────────────────────────────────────────────────────────┘

Expired rows are already filtered out of every read, so the sweep only
reclaims space; a failed or skipped sweep never affects correctness.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from datetime import datetime, timedelta
from typing import Any

from tablecache.clock import Clock, SystemClock
from tablecache.errors import InvalidConfigError, SweepFailureError
from tablecache.logging import get_logger
from tablecache.protocols import RowStore

logger = get_logger(__name__)

MINIMUM_SWEEP_INTERVAL = timedelta(minutes=5)
DEFAULT_SWEEP_INTERVAL = timedelta(minutes=30)


def validate_sweep_interval(interval: Any) -> timedelta:
    """Return ``interval`` as a timedelta, or raise :class:`InvalidConfigError`."""
    if isinstance(interval, (int, float)) and not isinstance(interval, bool):
        interval = timedelta(seconds=interval)
    if not isinstance(interval, timedelta):
        raise InvalidConfigError("sweep_interval", interval, "sweep_interval must be a timedelta")
    if interval < MINIMUM_SWEEP_INTERVAL:
        raise InvalidConfigError(
            "sweep_interval",
            interval,
            f"sweep_interval must be at least {MINIMUM_SWEEP_INTERVAL}, got {interval}",
        )
    return interval


class ExpirationSweeper:
    """Schedules ``store.delete_expired`` at most once per interval.

    Example:
        >>> from tablecache.stores import MemoryRowStore
        >>> sweeper = ExpirationSweeper(MemoryRowStore())
        >>> sweeper.maybe_trigger()
        True
        >>> sweeper.maybe_trigger()
        False
        >>> sweeper.close()
    """

    def __init__(
        self,
        store: RowStore,
        *,
        interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Clock | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._store = store
        self._interval = validate_sweep_interval(interval)
        self._clock = clock or SystemClock()
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._closed = False
        self._pending: Future | None = None

        self._last_sweep_time: datetime | None = None
        self._sweep_count = 0
        self._failure_count = 0
        self._last_deleted: int | None = None
        self._last_completed: datetime | None = None
        self._last_error: dict[str, Any] | None = None

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def last_sweep_time(self) -> datetime | None:
        return self._last_sweep_time

    @property
    def sweep_count(self) -> int:
        return self._sweep_count

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tablecache-sweep")
        return self._executor

    def is_due(self, now: datetime) -> bool:
        last = self._last_sweep_time
        return last is None or now - last > self._interval

    def maybe_trigger(self) -> bool:
        """Schedule a background sweep if one is due; never blocks on it.

        Returns:
            ``True`` if this call claimed the slot and scheduled a sweep.
        """
        now = self._clock.now()
        with self._lock:
            if self._closed or not self.is_due(now):
                return False
            self._last_sweep_time = now
            self._pending = self._get_executor().submit(self._run)

        logger.debug("cache.sweep.scheduled", claimed_at=now.isoformat())
        return True

    def sweep(self) -> int:
        """Delete expired rows now, relative to ``clock.now()`` at start.

        Raises the row store's error; use :meth:`maybe_trigger` for the
        fire-and-forget path.
        """
        started = self._clock.now()
        with self._lock:
            if self._last_sweep_time is None or started > self._last_sweep_time:
                self._last_sweep_time = started

        return self._delete(started)

    def _delete(self, started: datetime) -> int:
        deleted = self._store.delete_expired(started)

        with self._lock:
            self._sweep_count += 1
            self._last_deleted = deleted
            self._last_completed = started
            self._last_error = None

        logger.info(
            "cache.sweep.completed",
            deleted=deleted,
            store=self._store.name,
            started_at=started.isoformat(),
        )
        return deleted

    def _run(self) -> None:
        try:
            self._delete(self._clock.now())
        except Exception as exc:
            error = SweepFailureError(f"Expired entry sweep failed: {exc}", cause=exc).with_context(
                operation="sweep",
                store=self._store.name,
            )
            with self._lock:
                self._failure_count += 1
                self._last_error = error.to_dict()
            logger.error("cache.sweep.failed", **error.to_dict())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the most recently scheduled sweep has finished.

        Returns:
            ``False`` if it was still running when ``timeout`` elapsed.
        """
        pending = self._pending
        if pending is None:
            return True
        wait_futures([pending], timeout=timeout)
        return pending.done()

    def close(self, wait: bool = True) -> None:
        """Stop accepting sweeps and shut down an owned executor."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            executor = self._executor

        if executor is not None and self._owns_executor:
            executor.shutdown(wait=wait)
        elif wait:
            self.wait()

    def health(self) -> dict[str, Any]:
        """Sweeper status for diagnostics."""
        with self._lock:
            return {
                "healthy": not self._closed and self._last_error is None,
                "interval_seconds": self._interval.total_seconds(),
                "last_sweep_time": self._last_sweep_time.isoformat() if self._last_sweep_time else None,
                "last_completed": self._last_completed.isoformat() if self._last_completed else None,
                "last_deleted": self._last_deleted,
                "sweep_count": self._sweep_count,
                "failure_count": self._failure_count,
                "last_error": self._last_error,
                "closed": self._closed,
            }


__all__ = [
    "DEFAULT_SWEEP_INTERVAL",
    "MINIMUM_SWEEP_INTERVAL",
    "ExpirationSweeper",
    "validate_sweep_interval",
]
