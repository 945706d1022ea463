"""Notification Repository Interface.

Domain contract for notification data access operations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from courier.modules.notification.domain.entities.notification import Notification
from courier.modules.notification.domain.enums import (
    NotificationPriority,
    NotificationStatus,
)
from courier.modules.notification.domain.value_objects import NotificationId


@dataclass
class NotificationStatistics:
    """Aggregated delivery figures for a creation-time window."""

    total_notifications: int = 0
    sent_notifications: int = 0
    failed_notifications: int = 0
    pending_notifications: int = 0
    scheduled_notifications: int = 0
    success_rate: float = 0.0
    average_delivery_time: float = 0.0
    channel_breakdown: dict[str, int] = field(default_factory=dict)
    type_breakdown: dict[str, int] = field(default_factory=dict)
    priority_breakdown: dict[str, int] = field(default_factory=dict)


class INotificationRepository(ABC):
    """
    Repository interface for the Notification aggregate.

    Implementations serialize writes per aggregate; the domain performs no
    locking of its own.
    """

    @abstractmethod
    async def save(self, notification: Notification) -> None:
        """Insert or update a notification."""

    @abstractmethod
    async def find_by_id(self, notification_id: NotificationId) -> Notification | None:
        """Find notification by ID."""

    @abstractmethod
    async def find_by_recipient_id(
        self, recipient_id: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        """Find notifications by recipient, newest first."""

    @abstractmethod
    async def find_by_status(
        self, status: NotificationStatus, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        """Find notifications by status."""

    @abstractmethod
    async def find_due_scheduled(
        self, now: datetime, limit: int | None = None
    ) -> list[Notification]:
        """Find SCHEDULED notifications whose send time has arrived."""

    @abstractmethod
    async def find_retryable(self, now: datetime, limit: int | None = None) -> list[Notification]:
        """Find RETRY notifications with budget left that have not expired."""

    @abstractmethod
    async def find_by_priority(
        self, priority: NotificationPriority, limit: int | None = None
    ) -> list[Notification]:
        """Find notifications by priority, oldest first."""

    @abstractmethod
    async def find_expired(self, now: datetime, limit: int | None = None) -> list[Notification]:
        """Find non-terminal notifications whose expiry has passed."""

    @abstractmethod
    async def count_by_status(self, status: NotificationStatus) -> int:
        """Count notifications by status."""

    @abstractmethod
    async def count_by_recipient(self, recipient_id: str) -> int:
        """Count notifications by recipient."""

    @abstractmethod
    async def delete(self, notification_id: NotificationId) -> bool:
        """Delete notification by ID; returns whether a row was removed."""

    @abstractmethod
    async def bulk_update_status(
        self, notification_ids: list[NotificationId], status: NotificationStatus
    ) -> int:
        """Atomically set the status of many notifications; returns rows updated."""

    @abstractmethod
    async def find_by_date_range(
        self,
        start_date: datetime,
        end_date: datetime,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Notification]:
        """Find notifications created within ``[start_date, end_date]``."""

    @abstractmethod
    async def search_by_content(
        self, search_term: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        """Case-insensitive search over title and message."""

    @abstractmethod
    async def get_statistics(
        self, start_date: datetime, end_date: datetime
    ) -> NotificationStatistics:
        """Aggregate statistics for notifications created in the window."""
