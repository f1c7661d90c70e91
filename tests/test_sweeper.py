"""Tests for ``tablecache.sweeper`` — rate-limited background sweeps."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from tablecache.errors import InvalidConfigError
from tablecache.models import CacheEntry
from tablecache.stores.memory import MemoryRowStore
from tablecache.sweeper import (
    DEFAULT_SWEEP_INTERVAL,
    MINIMUM_SWEEP_INTERVAL,
    ExpirationSweeper,
    validate_sweep_interval,
)


class TestValidateSweepInterval:
    def test_defaults(self):
        assert DEFAULT_SWEEP_INTERVAL == timedelta(minutes=30)
        assert MINIMUM_SWEEP_INTERVAL == timedelta(minutes=5)

    def test_accepts_seconds(self):
        assert validate_sweep_interval(600) == timedelta(minutes=10)

    def test_floor_inclusive(self):
        assert validate_sweep_interval(MINIMUM_SWEEP_INTERVAL) == MINIMUM_SWEEP_INTERVAL

    @pytest.mark.parametrize("value", [timedelta(minutes=1), 299, timedelta(seconds=-1)])
    def test_below_floor(self, value):
        with pytest.raises(InvalidConfigError) as exc_info:
            validate_sweep_interval(value)
        assert exc_info.value.key == "sweep_interval"

    @pytest.mark.parametrize("value", ["30m", None, True])
    def test_wrong_type(self, value):
        with pytest.raises(InvalidConfigError):
            validate_sweep_interval(value)


class TestMaybeTrigger:
    def test_first_call_claims(self, memory_store, clock, inline_executor):
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        assert sweeper.last_sweep_time is None
        assert sweeper.maybe_trigger() is True
        assert sweeper.last_sweep_time == clock.now()
        assert sweeper.maybe_trigger() is False

    def test_triggers_again_after_interval(self, memory_store, clock, inline_executor):
        sweeper = ExpirationSweeper(
            memory_store, interval=timedelta(minutes=5), clock=clock, executor=inline_executor
        )
        sweeper.maybe_trigger()
        clock.advance(timedelta(minutes=5))
        assert sweeper.maybe_trigger() is False
        clock.advance(seconds=1)
        assert sweeper.maybe_trigger() is True
        assert inline_executor.submitted == 2

    def test_deletes_relative_to_sweep_start(self, memory_store, clock, inline_executor):
        now = clock.now()
        memory_store.upsert(CacheEntry("gone", b"", now - timedelta(seconds=1)))
        memory_store.upsert(CacheEntry("kept", b"", now))
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        sweeper.maybe_trigger()
        assert memory_store.peek("gone") is None
        assert memory_store.peek("kept") is not None
        assert sweeper.health()["last_deleted"] == 1

    def test_closed_sweeper_never_triggers(self, memory_store, clock, inline_executor):
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        sweeper.close()
        assert sweeper.maybe_trigger() is False
        assert inline_executor.submitted == 0

    def test_concurrent_claims_schedule_one_sweep(self, memory_store, clock):
        executor = ThreadPoolExecutor(max_workers=1)
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=executor)
        barrier = threading.Barrier(16)
        results: list[bool] = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            claimed = sweeper.maybe_trigger()
            with lock:
                results.append(claimed)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert sweeper.wait(timeout=5)
        assert sweeper.sweep_count == 1
        sweeper.close()
        executor.shutdown()


class TestSweep:
    def test_sweep_is_synchronous(self, memory_store, clock):
        memory_store.upsert(CacheEntry("k", b"", clock.now() - timedelta(seconds=1)))
        sweeper = ExpirationSweeper(memory_store, clock=clock)
        assert sweeper.sweep() == 1
        assert sweeper.sweep_count == 1
        sweeper.close()

    def test_sweep_defers_next_background_sweep(self, memory_store, clock, inline_executor):
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        sweeper.sweep()
        assert sweeper.maybe_trigger() is False
        assert inline_executor.submitted == 0

    def test_sweep_propagates_store_errors(self, memory_store, clock, monkeypatch):
        monkeypatch.setattr(memory_store, "delete_expired", lambda now: 1 / 0)
        sweeper = ExpirationSweeper(memory_store, clock=clock)
        with pytest.raises(ZeroDivisionError):
            sweeper.sweep()
        sweeper.close()

    def test_background_failure_is_recorded(self, memory_store, clock, inline_executor, monkeypatch):
        monkeypatch.setattr(memory_store, "delete_expired", lambda now: 1 / 0)
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        assert sweeper.maybe_trigger() is True

        health = sweeper.health()
        assert health["healthy"] is False
        assert health["failure_count"] == 1
        assert health["last_error"]["category"] == "SWEEP"
        assert health["last_error"]["retryable"] is True
        assert health["last_error"]["context"]["operation"] == "sweep"

    def test_success_clears_last_error(self, memory_store, clock, inline_executor, monkeypatch):
        original = memory_store.delete_expired
        monkeypatch.setattr(memory_store, "delete_expired", lambda now: 1 / 0)
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=inline_executor)
        sweeper.maybe_trigger()
        monkeypatch.setattr(memory_store, "delete_expired", original)
        clock.advance(timedelta(minutes=31))
        sweeper.maybe_trigger()
        assert sweeper.health()["healthy"] is True


class TestLifecycle:
    def test_wait_without_pending(self, memory_store):
        sweeper = ExpirationSweeper(memory_store)
        assert sweeper.wait(timeout=0) is True

    def test_owned_executor_uses_named_thread(self, memory_store, clock):
        names: list[str] = []
        original = memory_store.delete_expired

        def record(now):
            names.append(threading.current_thread().name)
            return original(now)

        memory_store.delete_expired = record
        sweeper = ExpirationSweeper(memory_store, clock=clock)
        sweeper.maybe_trigger()
        sweeper.close(wait=True)
        assert names and names[0].startswith("tablecache-sweep")

    def test_close_does_not_shut_down_borrowed_executor(self, memory_store, clock):
        executor = ThreadPoolExecutor(max_workers=1)
        sweeper = ExpirationSweeper(memory_store, clock=clock, executor=executor)
        sweeper.maybe_trigger()
        sweeper.close()
        assert executor.submit(lambda: 42).result(timeout=5) == 42
        executor.shutdown()

    def test_health_snapshot(self, memory_store, clock):
        sweeper = ExpirationSweeper(memory_store, clock=clock)
        health = sweeper.health()
        assert health["interval_seconds"] == 1800.0
        assert health["sweep_count"] == 0
        assert health["last_sweep_time"] is None
        sweeper.close()
        assert sweeper.health()["closed"] is True
