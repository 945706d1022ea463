"""Notification domain events.

Raised by the ``Notification`` aggregate and published by the application
layer. Each event carries enough data to build a downstream message.
"""

from datetime import datetime
from typing import Any

from courier.core.errors import ValidationError
from courier.core.events.types import DomainEvent, EventMetadata

AGGREGATE_TYPE = "Notification"


def _metadata(event_type: str, notification_id: str, occurred_at: datetime) -> EventMetadata:
    return EventMetadata(
        event_type=event_type,
        aggregate_id=notification_id,
        aggregate_type=AGGREGATE_TYPE,
        timestamp=occurred_at,
    )


class NotificationEvent(DomainEvent):
    """Base for events about one notification."""

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        occurred_at: datetime,
        metadata: EventMetadata | None = None,
        **kwargs: Any,
    ):
        self.notification_id = str(notification_id)
        self.recipient_id = recipient_id
        super().__init__(
            metadata=metadata
            or _metadata(self.__class__.__name__, self.notification_id, occurred_at),
            **kwargs,
        )

    def validate_payload(self) -> None:
        if not self.notification_id:
            raise ValidationError("notification_id is required")
        if not self.recipient_id:
            raise ValidationError("recipient_id is required")

    def payload_fields(self) -> dict[str, Any]:
        return {
            "notification_id": self.notification_id,
            "recipient_id": self.recipient_id,
        }


class NotificationCreated(NotificationEvent):
    """Emitted when a new notification is created."""

    event_name = "NotificationCreated"

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        notification_type: str,
        priority: str,
        is_scheduled: bool,
        created_at: datetime,
        **kwargs: Any,
    ):
        self.notification_type = notification_type
        self.priority = priority
        self.is_scheduled = is_scheduled
        self.created_at = created_at
        super().__init__(notification_id, recipient_id, occurred_at=created_at, **kwargs)

    def validate_payload(self) -> None:
        super().validate_payload()
        if not self.notification_type:
            raise ValidationError("notification_type is required")
        if not self.priority:
            raise ValidationError("priority is required")

    def payload_fields(self) -> dict[str, Any]:
        return {
            **super().payload_fields(),
            "type": self.notification_type,
            "priority": self.priority,
            "is_scheduled": self.is_scheduled,
            "created_at": self.created_at,
        }


class NotificationScheduled(NotificationEvent):
    """Emitted when a pending notification is scheduled for later."""

    event_name = "NotificationScheduled"

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        scheduled_at: datetime,
        scheduled_on: datetime,
        **kwargs: Any,
    ):
        self.scheduled_at = scheduled_at
        self.scheduled_on = scheduled_on
        super().__init__(notification_id, recipient_id, occurred_at=scheduled_on, **kwargs)

    def validate_payload(self) -> None:
        super().validate_payload()
        if not isinstance(self.scheduled_at, datetime):
            raise ValidationError("scheduled_at must be a datetime")

    def payload_fields(self) -> dict[str, Any]:
        return {
            **super().payload_fields(),
            "scheduled_at": self.scheduled_at,
            "scheduled_on": self.scheduled_on,
        }


class NotificationSent(NotificationEvent):
    """Emitted when a delivery attempt succeeds."""

    event_name = "NotificationSent"

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        channel: str,
        attempt_count: int,
        sent_at: datetime,
        **kwargs: Any,
    ):
        self.channel = channel or "unknown"
        self.attempt_count = attempt_count
        self.sent_at = sent_at
        super().__init__(notification_id, recipient_id, occurred_at=sent_at, **kwargs)

    def validate_payload(self) -> None:
        super().validate_payload()
        if not isinstance(self.attempt_count, int) or self.attempt_count < 0:
            raise ValidationError("attempt_count must be a non-negative integer")

    def payload_fields(self) -> dict[str, Any]:
        return {
            **super().payload_fields(),
            "channel": self.channel,
            "attempt_count": self.attempt_count,
            "sent_at": self.sent_at,
        }


class NotificationFailed(NotificationEvent):
    """Emitted when a notification is given up on."""

    event_name = "NotificationFailed"

    def __init__(
        self,
        notification_id: str,
        recipient_id: str,
        reason: str,
        attempt_count: int,
        failed_at: datetime,
        **kwargs: Any,
    ):
        self.reason = reason
        self.attempt_count = attempt_count
        self.failed_at = failed_at
        super().__init__(notification_id, recipient_id, occurred_at=failed_at, **kwargs)

    def validate_payload(self) -> None:
        super().validate_payload()
        if not self.reason:
            raise ValidationError("reason is required")
        if not isinstance(self.attempt_count, int) or self.attempt_count < 0:
            raise ValidationError("attempt_count must be a non-negative integer")

    def payload_fields(self) -> dict[str, Any]:
        return {
            **super().payload_fields(),
            "reason": self.reason,
            "attempt_count": self.attempt_count,
            "failed_at": self.failed_at,
        }


__all__ = [
    "NotificationCreated",
    "NotificationEvent",
    "NotificationFailed",
    "NotificationScheduled",
    "NotificationSent",
]
