"""
Shared pytest fixtures for tablecache tests.

This module provides:
- A deterministic ``ManualClock``
- In-memory and SQLite row stores
- An inline executor so background sweeps run synchronously
- Settings isolation (no ``TABLECACHE_*`` env vars or ``.env`` leakage)
"""

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import Executor, Future
from datetime import UTC, datetime
from pathlib import Path

import pytest

from tablecache.adapters.sqlite import SQLiteAdapter
from tablecache.cache import TableCache
from tablecache.clock import ManualClock
from tablecache.config.settings import clear_settings_cache
from tablecache.stores.memory import MemoryRowStore
from tablecache.stores.sql import SqlRowStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Strip TABLECACHE_* variables and run from an empty directory."""
    import os

    for name in list(os.environ):
        if name.startswith("TABLECACHE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def memory_store() -> Iterator[MemoryRowStore]:
    store = MemoryRowStore()
    yield store
    store.close()


@pytest.fixture
def sqlite_store() -> Iterator[SqlRowStore]:
    store = SqlRowStore(SQLiteAdapter(":memory:"))
    store.ensure_table()
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest):
    """Each engine test runs against both row stores."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def cache(store, clock: ManualClock, inline_executor: InlineExecutor) -> Iterator[TableCache]:
    cache = TableCache(store, clock=clock, executor=inline_executor)
    yield cache
    cache.close()
