"""Notification repository interfaces."""

from .notification_repository import INotificationRepository, NotificationStatistics

__all__ = ["INotificationRepository", "NotificationStatistics"]
