"""Time sources.

The engine and the sweeper never call ``datetime.now()`` directly; they
read an injected :class:`Clock`. Production code uses :class:`SystemClock`,
tests drive time with :class:`ManualClock`.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC.

    Raises:
        ValueError: If ``value`` is naive.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Naive datetime is not allowed: {value!r}")
    return value.astimezone(UTC)


@runtime_checkable
class Clock(Protocol):
    """Source of the current UTC time."""

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return utcnow()

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """Clock that only moves when told to.

    Example:
        >>> clock = ManualClock(datetime(2025, 1, 1, tzinfo=UTC))
        >>> _ = clock.advance(seconds=30)
        >>> clock.now()
        datetime.datetime(2025, 1, 1, 0, 0, 30, tzinfo=datetime.timezone.utc)
    """

    def __init__(self, start: datetime | None = None):
        self._now = ensure_utc(start) if start is not None else utcnow()
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        """Jump to an absolute time."""
        with self._lock:
            self._now = ensure_utc(value)

    def advance(self, delta: timedelta | None = None, *, seconds: float = 0) -> datetime:
        """Move the clock forward and return the new time."""
        step = (delta or timedelta()) + timedelta(seconds=seconds)
        with self._lock:
            self._now = self._now + step
            return self._now

    def __repr__(self) -> str:
        return f"ManualClock({self._now.isoformat()})"


__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "utcnow",
    "ensure_utc",
]
