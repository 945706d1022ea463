"""Retry scheduler service.

One pass over the repository that expires stale notifications, releases
scheduled notifications whose send time has arrived and re-dispatches
retries whose backoff has elapsed. Intended to be driven by an external
timer; it keeps no state between runs.
"""

import heapq
from dataclasses import dataclass
from datetime import datetime

from courier.core.clock import Clock, default_clock
from courier.core.logging import get_logger
from courier.modules.notification.domain.entities import Notification
from courier.modules.notification.domain.enums import NotificationStatus
from courier.modules.notification.domain.interfaces import (
    IMessagePublisher,
    INotificationRepository,
)
from courier.modules.notification.domain.services import DispatchRouter

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class SchedulerRunSummary:
    """Counts produced by a single scheduler pass."""

    expired: int = 0
    dispatched_scheduled: int = 0
    dispatched_retries: int = 0
    deferred: int = 0

    @property
    def dispatched(self) -> int:
        return self.dispatched_scheduled + self.dispatched_retries


class RetryScheduler:
    """
    Periodic dispatcher for scheduled and retrying notifications.

    Usage Example:
        scheduler = RetryScheduler(repository, publisher)
        summary = await scheduler.run_once()
    """

    def __init__(
        self,
        notification_repository: INotificationRepository,
        message_publisher: IMessagePublisher,
        router: DispatchRouter | None = None,
        clock: Clock | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.notification_repository = notification_repository
        self.message_publisher = message_publisher
        self.clock = clock or default_clock
        self.router = router or DispatchRouter(clock=self.clock)
        self.batch_size = batch_size

    async def run_once(self) -> SchedulerRunSummary:
        now = self.clock.now()

        expired = await self._expire(now)
        dispatched_scheduled = await self._dispatch_scheduled(now)
        dispatched_retries, deferred = await self._dispatch_retries(now)

        summary = SchedulerRunSummary(
            expired=expired,
            dispatched_scheduled=dispatched_scheduled,
            dispatched_retries=dispatched_retries,
            deferred=deferred,
        )

        logger.info(
            "Scheduler run completed",
            expired=summary.expired,
            dispatched_scheduled=summary.dispatched_scheduled,
            dispatched_retries=summary.dispatched_retries,
            deferred=summary.deferred,
        )
        return summary

    async def _expire(self, now: datetime) -> int:
        candidates = await self.notification_repository.find_expired(now, self.batch_size)

        expired = 0
        for notification in candidates:
            # PENDING and PROCESSING notifications cannot move to EXPIRED
            if not notification.can_transition_to(NotificationStatus.EXPIRED):
                logger.debug(
                    "Skipping expired notification",
                    notification_id=str(notification.id),
                    status=notification.status.value,
                )
                continue

            notification.mark_as_expired()
            await self.notification_repository.save(notification)
            expired += 1

        return expired

    async def _dispatch_scheduled(self, now: datetime) -> int:
        due = await self.notification_repository.find_due_scheduled(now, self.batch_size)

        dispatched = 0
        for notification in due:
            if not notification.is_due(now):
                continue
            await self._dispatch(notification, now)
            dispatched += 1

        return dispatched

    async def _dispatch_retries(self, now: datetime) -> tuple[int, int]:
        candidates = await self.notification_repository.find_retryable(now, self.batch_size)

        queue: list[tuple[int, datetime, int, Notification]] = []
        deferred = 0
        for index, notification in enumerate(candidates):
            if not notification.should_retry(now):
                continue

            retry_at = notification.next_retry_at()
            if retry_at is not None and retry_at > now:
                deferred += 1
                continue

            # index breaks ties so notifications are never compared
            heapq.heappush(
                queue,
                (
                    notification.priority.processing_order,
                    notification.created_at,
                    index,
                    notification,
                ),
            )

        dispatched = 0
        while queue:
            _, _, _, notification = heapq.heappop(queue)
            await self._dispatch(notification, now)
            dispatched += 1

        return dispatched, deferred

    async def _dispatch(self, notification: Notification, now: datetime) -> None:
        notification.mark_as_processing()
        await self.notification_repository.save(notification)

        message = self.router.route(notification, now)
        message_id = await self.message_publisher.publish(
            message.topic, message.payload, message.attributes
        )

        logger.info(
            "Notification dispatched",
            notification_id=str(notification.id),
            status=notification.status.value,
            attempt_count=notification.attempt_count,
            topic=message.topic,
            message_id=message_id,
        )


__all__ = ["DEFAULT_BATCH_SIZE", "RetryScheduler", "SchedulerRunSummary"]
