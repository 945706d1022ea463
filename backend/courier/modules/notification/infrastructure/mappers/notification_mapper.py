"""
Notification persistence mapper.

Converts between the Notification aggregate, flat record dictionaries and
``NotificationModel`` rows. Loading always goes through
``Notification.rehydrate`` so stored state is validated on the way in.
"""

from datetime import datetime
from typing import Any

from courier.core.clock import Clock, ensure_utc
from courier.core.errors import ValidationError
from courier.modules.notification.domain.entities import Notification
from courier.modules.notification.domain.enums import (
    DeliveryChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    RecurrencePattern,
)
from courier.modules.notification.domain.value_objects import (
    DeliveryAttempt,
    NotificationContent,
    NotificationId,
    SchedulingInfo,
)
from courier.modules.notification.infrastructure.models import NotificationModel

RECORD_FIELDS = (
    "id",
    "recipient_id",
    "notification_type",
    "priority",
    "priority_level",
    "delivery_channels",
    "title",
    "message",
    "image_url",
    "action_url",
    "action_text",
    "template_id",
    "template_variables",
    "status",
    "delivery_attempts",
    "attempt_count",
    "max_retries",
    "scheduled_at",
    "timezone",
    "recurrence",
    "created_at",
    "updated_at",
    "sent_at",
    "expires_at",
    "version",
    "metadata",
)


class NotificationMapper:
    """Mapper between the Notification aggregate and its stored form."""

    @staticmethod
    def to_record(notification: Notification) -> dict[str, Any]:
        """Flatten an aggregate into a column-keyed dictionary."""
        content = notification.content
        scheduling_info = notification.scheduling_info

        return {
            "id": str(notification.id),
            "recipient_id": notification.recipient_id,
            "notification_type": notification.notification_type.value,
            "priority": notification.priority.value,
            "priority_level": notification.priority.level,
            "delivery_channels": [c.value for c in notification.delivery_channels],
            "title": content.title,
            "message": content.message,
            "image_url": content.image_url,
            "action_url": content.action_url,
            "action_text": content.action_text,
            "template_id": notification.template_id,
            "template_variables": notification.template_variables,
            "status": notification.status.value,
            "delivery_attempts": [a.to_dict() for a in notification.delivery_attempts],
            "attempt_count": notification.attempt_count,
            "max_retries": notification.max_retries,
            "scheduled_at": scheduling_info.scheduled_at if scheduling_info else None,
            "timezone": scheduling_info.timezone if scheduling_info else None,
            "recurrence": scheduling_info.recurrence.value
            if scheduling_info and scheduling_info.recurrence
            else None,
            "created_at": notification.created_at,
            "updated_at": notification.updated_at,
            "sent_at": NotificationMapper._sent_at(notification),
            "expires_at": notification.expires_at,
            "version": notification.version,
            "metadata": notification.metadata,
        }

    @staticmethod
    def from_record(record: dict[str, Any], clock: Clock | None = None) -> Notification:
        """
        Rebuild an aggregate from a record produced by ``to_record``.

        Naive datetimes (as returned by SQLite) are taken as UTC.

        Raises:
            ValidationError: If the record is incomplete or inconsistent
        """
        try:
            scheduled_at = _as_datetime(record.get("scheduled_at"))
            scheduling_info = None
            if scheduled_at is not None:
                scheduling_info = SchedulingInfo.rehydrate(
                    scheduled_at=scheduled_at,
                    timezone=record.get("timezone"),
                    recurrence=RecurrencePattern.from_string(record["recurrence"])
                    if record.get("recurrence")
                    else None,
                )

            return Notification.rehydrate(
                notification_id=NotificationId.from_string(record["id"]),
                recipient_id=record["recipient_id"],
                notification_type=NotificationType.from_string(record["notification_type"]),
                content=NotificationContent(
                    title=record["title"],
                    message=record["message"],
                    image_url=record.get("image_url"),
                    action_url=record.get("action_url"),
                    action_text=record.get("action_text"),
                ),
                delivery_channels=[
                    DeliveryChannel.from_string(c) for c in record["delivery_channels"]
                ],
                priority=NotificationPriority.from_string(record["priority"]),
                status=NotificationStatus.from_string(record["status"]),
                created_at=_as_datetime(record["created_at"]),
                updated_at=_as_datetime(record.get("updated_at")),
                scheduling_info=scheduling_info,
                metadata=record.get("metadata"),
                delivery_attempts=[
                    DeliveryAttempt.from_dict(a) for a in record.get("delivery_attempts") or []
                ],
                max_retries=record["max_retries"],
                expires_at=_as_datetime(record.get("expires_at")),
                template_id=record.get("template_id"),
                template_variables=record.get("template_variables"),
                version=record.get("version") or 1,
                clock=clock,
            )
        except KeyError as e:
            raise ValidationError(f"Notification record is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid notification record: {e}") from e

    @staticmethod
    def to_model(notification: Notification) -> NotificationModel:
        return NotificationMapper.update_model(NotificationModel(), notification)

    @staticmethod
    def update_model(model: NotificationModel, notification: Notification) -> NotificationModel:
        """Copy the aggregate's current state onto an existing row."""
        for key, value in NotificationMapper.to_record(notification).items():
            setattr(model, "metadata_" if key == "metadata" else key, value)
        return model

    @staticmethod
    def from_model(model: NotificationModel, clock: Clock | None = None) -> Notification:
        record = {
            key: getattr(model, "metadata_" if key == "metadata" else key)
            for key in RECORD_FIELDS
        }
        return NotificationMapper.from_record(record, clock)

    @staticmethod
    def _sent_at(notification: Notification) -> datetime | None:
        if notification.status != NotificationStatus.SENT:
            return None
        last = notification.last_attempt
        if last is not None and last.success:
            return last.attempted_at
        return notification.updated_at


def _as_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return ensure_utc(value)


__all__ = ["RECORD_FIELDS", "NotificationMapper"]
