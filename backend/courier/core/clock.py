"""Wall-clock abstraction.

Domain predicates that depend on the current time take a ``Clock`` (or an
explicit ``now``) so they are re-evaluated at call time and stay testable.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock(Clock):
    """
    Clock frozen at a given instant until moved explicitly.

    Usage Example:
        clock = FixedClock(datetime(2024, 1, 1, tzinfo=UTC))
        clock.advance(minutes=5)
    """

    def __init__(self, instant: datetime | None = None):
        self._now = ensure_utc(instant) if instant else datetime.now(UTC)

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = ensure_utc(instant)

    def advance(self, **delta: float) -> datetime:
        """Move the clock forward by ``timedelta(**delta)`` and return the new time."""
        self._now = self._now + timedelta(**delta)
        return self._now


default_clock = SystemClock()
