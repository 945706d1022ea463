"""Dispatch routing.

Maps a notification's current state to the downstream topic it should be
forwarded to. Routing is a pure function of the notification and the
current instant, so it can be re-derived at any time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from courier.core.clock import Clock, default_clock
from courier.modules.notification.domain.entities.notification import Notification
from courier.modules.notification.domain.enums import NotificationTopic


@dataclass(frozen=True)
class RoutingMessage:
    """A ``(topic, payload)`` pair ready for the message transport."""

    topic: str
    payload: dict[str, Any]
    attributes: dict[str, str] = field(default_factory=dict)


class DispatchRouter:
    """
    Chooses the topic for a notification and builds its routing payload.

    Scheduled-in-the-future wins over priority; high priority wins over the
    default created topic.
    """

    def __init__(
        self,
        created_topic: str = NotificationTopic.CREATED.value,
        priority_topic: str = NotificationTopic.PRIORITY.value,
        scheduled_topic: str = NotificationTopic.SCHEDULED.value,
        clock: Clock | None = None,
    ):
        self.created_topic = created_topic
        self.priority_topic = priority_topic
        self.scheduled_topic = scheduled_topic
        self._clock = clock or default_clock

    def select_topic(self, notification: Notification, now: datetime | None = None) -> str:
        now = now or self._clock.now()
        scheduling_info = notification.scheduling_info

        if scheduling_info is not None and scheduling_info.is_scheduled(now):
            return self.scheduled_topic
        if notification.priority.is_high():
            return self.priority_topic
        return self.created_topic

    def build_payload(
        self, notification: Notification, now: datetime | None = None
    ) -> dict[str, Any]:
        now = now or self._clock.now()
        scheduling_info = notification.scheduling_info

        return {
            "notification_id": str(notification.id),
            "recipient_id": notification.recipient_id,
            "type": notification.notification_type.value,
            "priority": notification.priority.value,
            "channels": [channel.value for channel in notification.delivery_channels],
            "scheduled_at": scheduling_info.scheduled_at.isoformat()
            if scheduling_info
            else None,
            "metadata": notification.metadata,
            "timestamp": now.isoformat(),
        }

    def route(self, notification: Notification, now: datetime | None = None) -> RoutingMessage:
        now = now or self._clock.now()
        return RoutingMessage(
            topic=self.select_topic(notification, now),
            payload=self.build_payload(notification, now),
            attributes={
                "notification_id": str(notification.id),
                "priority": notification.priority.value,
                "type": notification.notification_type.value,
            },
        )


__all__ = ["DispatchRouter", "RoutingMessage"]
