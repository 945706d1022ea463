"""Notification domain interfaces."""

from courier.modules.notification.domain.interfaces.repositories import (
    INotificationRepository,
    NotificationStatistics,
)
from courier.modules.notification.domain.interfaces.services import IMessagePublisher

__all__ = [
    "IMessagePublisher",
    "INotificationRepository",
    "NotificationStatistics",
]
