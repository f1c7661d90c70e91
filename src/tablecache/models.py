"""Cache data model.

``CacheEntry`` mirrors one row of the cache table. ``CacheEntryOptions``
carries the caller's expiration request for :meth:`TableCache.set`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One persisted cache row.

    Attributes:
        id: Unique cache key.
        value: Opaque payload.
        expires_at_time: The entry is expired once ``now > expires_at_time``.
        sliding_expiration_seconds: Renewal window applied on every read, if any.
        absolute_expiration: Hard ceiling for ``expires_at_time``, if any.
    """

    id: str
    value: bytes
    expires_at_time: datetime
    sliding_expiration_seconds: float | None = None
    absolute_expiration: datetime | None = None

    @property
    def sliding_expiration(self) -> timedelta | None:
        if self.sliding_expiration_seconds is None:
            return None
        return timedelta(seconds=self.sliding_expiration_seconds)

    @property
    def is_sliding(self) -> bool:
        return self.sliding_expiration_seconds is not None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "size": len(self.value),
            "expires_at_time": self.expires_at_time.isoformat(),
            "sliding_expiration_seconds": self.sliding_expiration_seconds,
            "absolute_expiration": (
                self.absolute_expiration.isoformat() if self.absolute_expiration else None
            ),
        }


@dataclass(frozen=True, slots=True)
class CacheEntryOptions:
    """Expiration request for a ``set``.

    At most one of ``absolute_expiration`` and
    ``absolute_expiration_relative_to_now`` may be given.

    Example:
        >>> options = CacheEntryOptions(sliding_expiration=timedelta(minutes=20))
        >>> options = CacheEntryOptions.expire_in(seconds=10)
    """

    sliding_expiration: timedelta | None = None
    absolute_expiration: datetime | None = None
    absolute_expiration_relative_to_now: timedelta | None = None

    @classmethod
    def sliding(cls, seconds: float) -> CacheEntryOptions:
        """Sliding window only."""
        return cls(sliding_expiration=timedelta(seconds=seconds))

    @classmethod
    def expire_in(cls, seconds: float, *, sliding: float | None = None) -> CacheEntryOptions:
        """Absolute expiration relative to now, optionally also sliding."""
        return cls(
            sliding_expiration=timedelta(seconds=sliding) if sliding is not None else None,
            absolute_expiration_relative_to_now=timedelta(seconds=seconds),
        )

    @classmethod
    def expire_at(cls, when: datetime, *, sliding: float | None = None) -> CacheEntryOptions:
        """Absolute expiration at a fixed instant, optionally also sliding."""
        return cls(
            sliding_expiration=timedelta(seconds=sliding) if sliding is not None else None,
            absolute_expiration=when,
        )

    @property
    def has_expiration(self) -> bool:
        return (
            self.sliding_expiration is not None
            or self.absolute_expiration is not None
            or self.absolute_expiration_relative_to_now is not None
        )


__all__ = [
    "CacheEntry",
    "CacheEntryOptions",
]
