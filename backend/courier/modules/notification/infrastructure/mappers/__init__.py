"""Notification persistence mappers."""

from .notification_mapper import NotificationMapper

__all__ = ["NotificationMapper"]
