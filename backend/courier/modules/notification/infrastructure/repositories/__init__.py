"""Notification repository implementations."""

from .notification_repository import (
    RepositoryError,
    SqlAlchemyNotificationRepository,
)

__all__ = ["RepositoryError", "SqlAlchemyNotificationRepository"]
