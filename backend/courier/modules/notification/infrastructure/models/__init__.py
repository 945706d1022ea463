"""Notification persistence models."""

from .notification import Base, NotificationModel

__all__ = ["Base", "NotificationModel"]
