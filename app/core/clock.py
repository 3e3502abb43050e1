"""Clock abstraction for TTL and backoff calculations.

Production code uses SystemClock. Tests inject ManualClock so that cache
expiry and retry due-times can be checked without sleeping.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class ManualClock:
    """Controllable clock for deterministic tests.

    Example:
        clock = ManualClock()
        cache = DeduplicationCache(ttl=timedelta(minutes=5), max_size=100, clock=clock)
        cache.record(fingerprint)
        clock.advance(minutes=5)
        assert not cache.is_duplicate(event)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move the clock forward by ``delta`` or by ``timedelta(**kwargs)``."""
        step = delta if delta is not None else timedelta(**kwargs)
        if step < timedelta(0):
            raise ValueError(f"Cannot advance clock backwards: {step}")
        self._current += step
        return self._current

    def set(self, value: datetime) -> None:
        self._current = value
