"""Notification domain enums.

Closed enumerations for channels, priorities, statuses and notification
types. Policy numbers live in module-level tables keyed by member so the
values are visible in one place.
"""

from datetime import datetime
from enum import Enum

from dateutil.relativedelta import relativedelta

from courier.core.errors import ValidationError
from courier.modules.notification.domain.errors import InvalidConfigurationError

MAX_CHANNEL_RETRY_DELAY_MS = 300_000


def _lookup(enum_class: type[Enum], kind: str, value: str) -> Enum:
    if not isinstance(value, str):
        raise InvalidConfigurationError(kind, value)
    try:
        return enum_class[value.strip().upper()]
    except KeyError:
        raise InvalidConfigurationError(
            kind, value, allowed=[member.value for member in enum_class]
        ) from None


class DeliveryChannel(Enum):
    """Available notification delivery channels."""

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    WEBHOOK = "WEBHOOK"
    IN_APP = "IN_APP"

    @classmethod
    def from_string(cls, value: str) -> "DeliveryChannel":
        """
        Resolve a channel name, case-insensitively.

        Raises:
            InvalidConfigurationError: If the name is unknown
        """
        return _lookup(cls, "delivery channel", value)

    @classmethod
    def all_channels(cls) -> list["DeliveryChannel"]:
        return list(cls)

    @property
    def max_retries(self) -> int:
        return _CHANNEL_MAX_RETRIES[self]

    @property
    def base_retry_delay(self) -> int:
        """Base retry delay in milliseconds."""
        return _CHANNEL_BASE_RETRY_DELAY_MS[self]

    @property
    def timeout(self) -> int:
        """Provider call timeout in milliseconds."""
        return _CHANNEL_TIMEOUT_MS[self]

    @property
    def default_rate_limit(self) -> int:
        """Messages per hour."""
        return _CHANNEL_RATE_LIMIT_PER_HOUR[self]

    @property
    def requires_user_consent(self) -> bool:
        return self != DeliveryChannel.WEBHOOK

    def is_real_time(self) -> bool:
        return self in (DeliveryChannel.PUSH, DeliveryChannel.IN_APP)

    def is_external(self) -> bool:
        """Check if delivery needs an outbound call to a third party."""
        return self in (DeliveryChannel.EMAIL, DeliveryChannel.SMS, DeliveryChannel.WEBHOOK)

    def get_retry_delay(self, attempt_number: int) -> int:
        """
        Exponential backoff for a 0-indexed attempt, capped at five minutes.

        Raises:
            ValidationError: If attempt_number is negative
        """
        if not isinstance(attempt_number, int) or attempt_number < 0:
            raise ValidationError(
                "Attempt number must be a non-negative integer", field="attempt_number"
            )
        return min(self.base_retry_delay * 2**attempt_number, MAX_CHANNEL_RETRY_DELAY_MS)


_CHANNEL_MAX_RETRIES = {
    DeliveryChannel.EMAIL: 3,
    DeliveryChannel.SMS: 2,
    DeliveryChannel.PUSH: 3,
    DeliveryChannel.WEBHOOK: 5,
    DeliveryChannel.IN_APP: 1,
}

_CHANNEL_BASE_RETRY_DELAY_MS = {
    DeliveryChannel.EMAIL: 30_000,
    DeliveryChannel.SMS: 60_000,
    DeliveryChannel.PUSH: 15_000,
    DeliveryChannel.WEBHOOK: 45_000,
    DeliveryChannel.IN_APP: 10_000,
}

_CHANNEL_TIMEOUT_MS = {
    DeliveryChannel.EMAIL: 30_000,
    DeliveryChannel.SMS: 15_000,
    DeliveryChannel.PUSH: 10_000,
    DeliveryChannel.WEBHOOK: 30_000,
    DeliveryChannel.IN_APP: 5_000,
}

_CHANNEL_RATE_LIMIT_PER_HOUR = {
    DeliveryChannel.EMAIL: 10_000,
    DeliveryChannel.SMS: 1_000,
    DeliveryChannel.PUSH: 50_000,
    DeliveryChannel.WEBHOOK: 5_000,
    DeliveryChannel.IN_APP: 100_000,
}


class NotificationPriority(Enum):
    """Notification priority levels, LOW (1) to CRITICAL (5)."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_string(cls, value: str) -> "NotificationPriority":
        return _lookup(cls, "notification priority", value)

    @classmethod
    def from_level(cls, level: int) -> "NotificationPriority":
        for priority, priority_level in _PRIORITY_LEVELS.items():
            if priority_level == level:
                return priority
        raise InvalidConfigurationError("notification priority level", level)

    @property
    def level(self) -> int:
        return _PRIORITY_LEVELS[self]

    def is_high(self) -> bool:
        return self.level >= _PRIORITY_LEVELS[NotificationPriority.HIGH]

    def is_critical(self) -> bool:
        return self == NotificationPriority.CRITICAL

    def is_higher_than(self, other: "NotificationPriority") -> bool:
        return self.level > other.level

    def is_lower_than(self, other: "NotificationPriority") -> bool:
        return self.level < other.level

    @property
    def processing_order(self) -> int:
        """Min-heap key: lower value is processed first."""
        return 10 - self.level

    @property
    def retry_delay(self) -> int:
        """Priority-based backoff in milliseconds."""
        return max(60_000 // self.level, 5_000)


_PRIORITY_LEVELS = {
    NotificationPriority.LOW: 1,
    NotificationPriority.NORMAL: 2,
    NotificationPriority.HIGH: 3,
    NotificationPriority.URGENT: 4,
    NotificationPriority.CRITICAL: 5,
}


class NotificationStatus(Enum):
    """Notification lifecycle status."""

    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    FAILED = "FAILED"
    RETRY = "RETRY"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @classmethod
    def from_string(cls, value: str) -> "NotificationStatus":
        return _lookup(cls, "notification status", value)

    def can_transition_to(self, new_status: "NotificationStatus") -> bool:
        return new_status in _STATUS_TRANSITIONS[self]

    def allowed_transitions(self) -> frozenset["NotificationStatus"]:
        return _STATUS_TRANSITIONS[self]

    def is_terminal(self) -> bool:
        """SENT, EXPIRED and CANCELLED accept no further transitions."""
        return not _STATUS_TRANSITIONS[self]

    def is_processable(self) -> bool:
        return self in (
            NotificationStatus.PENDING,
            NotificationStatus.SCHEDULED,
            NotificationStatus.RETRY,
        )


_STATUS_TRANSITIONS: dict[NotificationStatus, frozenset[NotificationStatus]] = {
    NotificationStatus.PENDING: frozenset(
        {NotificationStatus.SCHEDULED, NotificationStatus.PROCESSING, NotificationStatus.CANCELLED}
    ),
    NotificationStatus.SCHEDULED: frozenset(
        {NotificationStatus.PROCESSING, NotificationStatus.CANCELLED, NotificationStatus.EXPIRED}
    ),
    NotificationStatus.PROCESSING: frozenset(
        {NotificationStatus.SENT, NotificationStatus.FAILED, NotificationStatus.RETRY}
    ),
    NotificationStatus.RETRY: frozenset(
        {NotificationStatus.PROCESSING, NotificationStatus.FAILED, NotificationStatus.EXPIRED}
    ),
    NotificationStatus.SENT: frozenset(),
    NotificationStatus.FAILED: frozenset({NotificationStatus.RETRY}),
    NotificationStatus.EXPIRED: frozenset(),
    NotificationStatus.CANCELLED: frozenset(),
}


class NotificationType(Enum):
    """What the notification is about."""

    POST_CREATED = "POST_CREATED"
    POST_APPROVED = "POST_APPROVED"
    POST_REJECTED = "POST_REJECTED"
    POST_EXPIRED = "POST_EXPIRED"
    USER_WELCOME = "USER_WELCOME"
    USER_VERIFICATION = "USER_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    PROMOTIONAL = "PROMOTIONAL"
    SECURITY_ALERT = "SECURITY_ALERT"

    @classmethod
    def from_string(cls, value: str) -> "NotificationType":
        return _lookup(cls, "notification type", value)

    def is_transactional(self) -> bool:
        return self in _TRANSACTIONAL_TYPES

    def is_promotional(self) -> bool:
        return self in _PROMOTIONAL_TYPES


# POST_EXPIRED is neither
_TRANSACTIONAL_TYPES = frozenset(
    {
        NotificationType.POST_CREATED,
        NotificationType.POST_APPROVED,
        NotificationType.POST_REJECTED,
        NotificationType.USER_WELCOME,
        NotificationType.USER_VERIFICATION,
        NotificationType.PASSWORD_RESET,
        NotificationType.SECURITY_ALERT,
    }
)

_PROMOTIONAL_TYPES = frozenset(
    {NotificationType.PROMOTIONAL, NotificationType.SYSTEM_MAINTENANCE}
)


class RecurrencePattern(Enum):
    """Calendar-aware recurrence rules."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @classmethod
    def from_string(cls, value: str) -> "RecurrencePattern":
        return _lookup(cls, "recurrence pattern", value)

    def get_next_execution(self, last_execution: datetime) -> datetime:
        """
        Advance ``last_execution`` by one period.

        Month and year steps clamp to the last day of a shorter month, so
        2024-01-31 monthly becomes 2024-02-29.
        """
        return last_execution + _RECURRENCE_STEPS[self]


_RECURRENCE_STEPS = {
    RecurrencePattern.DAILY: relativedelta(days=1),
    RecurrencePattern.WEEKLY: relativedelta(weeks=1),
    RecurrencePattern.MONTHLY: relativedelta(months=1),
    RecurrencePattern.YEARLY: relativedelta(years=1),
}


class ErrorCategory(Enum):
    """Failure classification of a delivery attempt."""

    NONE = "NONE"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    NETWORK = "NETWORK"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class NotificationTopic(Enum):
    """Default downstream topics for routing messages."""

    CREATED = "notification-created"
    PRIORITY = "notification-priority"
    SCHEDULED = "notification-scheduled"


__all__ = [
    "MAX_CHANNEL_RETRY_DELAY_MS",
    "DeliveryChannel",
    "ErrorCategory",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationTopic",
    "NotificationType",
    "RecurrencePattern",
]
