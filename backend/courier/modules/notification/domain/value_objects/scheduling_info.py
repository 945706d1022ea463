"""Scheduling info value object."""

from datetime import datetime, timedelta
from typing import Any

import pytz

from courier.core.clock import ensure_utc
from courier.core.domain.base import ValueObject
from courier.core.errors import ValidationError
from courier.modules.notification.domain.enums import RecurrencePattern

MAX_SCHEDULING_HORIZON = timedelta(days=365)
OVERDUE_THRESHOLD = timedelta(minutes=5)


class SchedulingInfo(ValueObject):
    """
    When a notification should go out, and whether it repeats.

    Time predicates take ``now`` explicitly; nothing here reads the clock.

    Usage:
        info = SchedulingInfo(
            scheduled_at=clock.now() + timedelta(hours=1),
            now=clock.now(),
            timezone="Europe/Berlin",
            recurrence=RecurrencePattern.WEEKLY,
        )
        info.is_due(clock.now())
    """

    def __init__(
        self,
        scheduled_at: datetime,
        now: datetime,
        timezone: str | None = None,
        recurrence: RecurrencePattern | None = None,
    ):
        """
        Initialize scheduling info.

        Args:
            scheduled_at: Absolute send time (naive values are taken as UTC)
            now: Reference instant for the one-year horizon check
            timezone: Optional IANA timezone name of the recipient
            recurrence: Optional repeat rule

        Raises:
            ValidationError: If the instant is invalid or too far ahead, or the timezone is unknown
        """
        super().__init__()

        if not isinstance(scheduled_at, datetime):
            raise ValidationError("Invalid scheduled date", field="scheduled_at")

        scheduled_at = ensure_utc(scheduled_at)
        if scheduled_at > ensure_utc(now) + MAX_SCHEDULING_HORIZON:
            raise ValidationError(
                "Scheduled date cannot be more than 1 year in the future",
                field="scheduled_at",
            )

        if timezone is not None and timezone not in pytz.all_timezones_set:
            raise ValidationError(f"Invalid timezone: {timezone}", field="timezone")

        if recurrence is not None and not isinstance(recurrence, RecurrencePattern):
            raise ValidationError(
                "recurrence must be a RecurrencePattern", field="recurrence"
            )

        self.scheduled_at = scheduled_at
        self.timezone = timezone
        self.recurrence = recurrence

        self._freeze()

    @classmethod
    def rehydrate(
        cls,
        scheduled_at: datetime,
        timezone: str | None = None,
        recurrence: RecurrencePattern | None = None,
    ) -> "SchedulingInfo":
        """
        Rebuild persisted scheduling info.

        The horizon is measured from the stored instant itself, since it was
        checked against the clock when first created.
        """
        return cls(
            scheduled_at=scheduled_at,
            now=ensure_utc(scheduled_at),
            timezone=timezone,
            recurrence=recurrence,
        )

    def is_scheduled(self, now: datetime) -> bool:
        """True while the send time is still in the future."""
        return self.scheduled_at > ensure_utc(now)

    def is_due(self, now: datetime) -> bool:
        return self.scheduled_at <= ensure_utc(now)

    def is_overdue(self, now: datetime) -> bool:
        """True once more than five minutes have passed since the send time."""
        return ensure_utc(now) - self.scheduled_at > OVERDUE_THRESHOLD

    def should_execute_now(self, now: datetime) -> bool:
        return self.is_due(now) and not self.is_overdue(now)

    def delay_until_execution(self, now: datetime) -> int:
        """Milliseconds until the send time, zero once due."""
        delta = self.scheduled_at - ensure_utc(now)
        return max(0, int(delta.total_seconds() * 1000))

    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def get_next_execution(self) -> datetime | None:
        if self.recurrence is None:
            return None
        return self.recurrence.get_next_execution(self.scheduled_at)

    def local_scheduled_at(self) -> datetime:
        """Send time expressed in the recipient's timezone, or UTC if none."""
        if self.timezone is None:
            return self.scheduled_at
        return self.scheduled_at.astimezone(pytz.timezone(self.timezone))

    def to_dict(self) -> dict[str, Any]:
        return {
            "scheduled_at": self.scheduled_at.isoformat(),
            "timezone": self.timezone,
            "recurrence": self.recurrence.value if self.recurrence else None,
        }

    def __str__(self) -> str:
        return self.scheduled_at.isoformat()
