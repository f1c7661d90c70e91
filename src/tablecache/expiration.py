"""Expiration calculator.

Pure functions that decide when a cache entry expires. Nothing here
touches a store or reads a clock; callers pass ``now`` in.

Manifesto:
    Sliding and absolute expiration interact in exactly two places: when
    an entry is written, and when a read renews it. Keeping both rules
    in one side-effect-free module lets the SQL statements, the
    in-process store and the tests agree on the same arithmetic.

Rules:
    ::

        initial (set time)
          sliding only      → now + sliding
          absolute only     → absolute
          both              → min(now + sliding, absolute)

        renewal (get / refresh time), only when ALL hold:
          now <= expires_at_time              (not yet expired)
          sliding is not None                 (entry is sliding)
          absolute is None or absolute != expires_at_time
                                              (not already pinned at ceiling)
          new expires_at_time = min(now + sliding, absolute)

    The renewal guard is a conditional write: concurrent renewals of the
    same row converge and an expired row is never resurrected.

Tags:
    expiration, sliding, absolute, ttl, tablecache

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from tablecache.clock import ensure_utc
from tablecache.errors import InvalidOptionsError
from tablecache.models import CacheEntry, CacheEntryOptions


@dataclass(frozen=True, slots=True)
class ResolvedExpiration:
    """Expiration fields ready to be stored."""

    expires_at_time: datetime
    sliding_expiration_seconds: float | None
    absolute_expiration: datetime | None


def compute_expires_at(
    now: datetime,
    sliding: timedelta | None,
    absolute: datetime | None,
) -> datetime:
    """Initial ``expires_at_time`` for an entry written at ``now``."""
    if sliding is None:
        if absolute is None:
            raise InvalidOptionsError("Either sliding or absolute expiration is required")
        return absolute
    candidate = now + sliding
    if absolute is None:
        return candidate
    return min(candidate, absolute)


def resolve_absolute_expiration(
    options: CacheEntryOptions,
    now: datetime,
) -> datetime | None:
    """Collapse the two absolute forms into one UTC timestamp.

    Raises:
        InvalidOptionsError: Both forms given, a non-positive relative
            duration, a naive timestamp, or a result not after ``now``.
    """
    relative = options.absolute_expiration_relative_to_now
    absolute = options.absolute_expiration

    if relative is not None and absolute is not None:
        raise InvalidOptionsError(
            "Specify absolute_expiration or absolute_expiration_relative_to_now, not both",
            field="absolute_expiration",
        )

    if relative is not None:
        if relative <= timedelta(0):
            raise InvalidOptionsError(
                "The relative expiration value must be positive",
                field="absolute_expiration_relative_to_now",
                value=relative,
            )
        return now + relative

    if absolute is None:
        return None

    try:
        absolute = ensure_utc(absolute)
    except ValueError as exc:
        raise InvalidOptionsError(
            "absolute_expiration must be timezone-aware",
            field="absolute_expiration",
            value=absolute,
            cause=exc,
        ) from exc

    if absolute <= now:
        raise InvalidOptionsError(
            "The absolute expiration value must be in the future",
            field="absolute_expiration",
            value=absolute,
        )
    return absolute


def resolve_expiration(
    options: CacheEntryOptions | None,
    now: datetime,
    *,
    default_sliding: timedelta | None = None,
) -> ResolvedExpiration:
    """Validate ``options`` and compute the fields stored by ``set``.

    When no expiration is requested, ``default_sliding`` is applied;
    without one the request is rejected.
    """
    options = options or CacheEntryOptions()

    sliding = options.sliding_expiration
    if sliding is not None and sliding <= timedelta(0):
        raise InvalidOptionsError(
            "The sliding expiration value must be positive",
            field="sliding_expiration",
            value=sliding,
        )

    absolute = resolve_absolute_expiration(options, now)

    if sliding is None and absolute is None:
        if default_sliding is None:
            raise InvalidOptionsError(
                "Either sliding_expiration or an absolute expiration must be set"
            )
        sliding = default_sliding

    return ResolvedExpiration(
        expires_at_time=compute_expires_at(now, sliding, absolute),
        sliding_expiration_seconds=sliding.total_seconds() if sliding is not None else None,
        absolute_expiration=absolute,
    )


def renew_expires_at(entry: CacheEntry, now: datetime) -> datetime | None:
    """New ``expires_at_time`` for a touch at ``now``, or ``None`` for no write."""
    if entry.is_expired(now):
        return None
    if entry.sliding_expiration_seconds is None:
        return None
    if entry.absolute_expiration is not None and entry.absolute_expiration == entry.expires_at_time:
        return None
    return compute_expires_at(now, entry.sliding_expiration, entry.absolute_expiration)


def is_expired(expires_at_time: datetime, now: datetime) -> bool:
    return now > expires_at_time


__all__ = [
    "ResolvedExpiration",
    "compute_expires_at",
    "resolve_absolute_expiration",
    "resolve_expiration",
    "renew_expires_at",
    "is_expired",
]
