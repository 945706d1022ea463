"""SQLAlchemy repository implementation for the Notification aggregate."""

from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import Select, and_, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courier.core.clock import Clock, default_clock, ensure_utc
from courier.core.errors import ConflictError, InfrastructureError
from courier.core.logging import get_logger
from courier.modules.notification.domain.entities import Notification
from courier.modules.notification.domain.enums import (
    NotificationPriority,
    NotificationStatus,
)
from courier.modules.notification.domain.interfaces import (
    INotificationRepository,
    NotificationStatistics,
)
from courier.modules.notification.domain.value_objects import NotificationId
from courier.modules.notification.infrastructure.mappers import NotificationMapper
from courier.modules.notification.infrastructure.models import NotificationModel

logger = get_logger(__name__)

# FAILED is left out: a failed notification can only be requeued, never expired
EXPIRABLE_STATUSES = (
    NotificationStatus.PENDING.value,
    NotificationStatus.SCHEDULED.value,
    NotificationStatus.PROCESSING.value,
    NotificationStatus.RETRY.value,
)


class RepositoryError(InfrastructureError):
    """Raised when a persistence operation fails."""

    default_code = "REPOSITORY_ERROR"


class SqlAlchemyNotificationRepository(INotificationRepository):
    """
    Notification repository backed by an async SQLAlchemy session factory.

    Each call runs in its own session and transaction: committed on success,
    rolled back on error. Saves are guarded by the aggregate version, so a
    writer holding a stale copy gets a ``ConflictError``.

    Usage Example:
        engine = create_engine(settings)
        repository = SqlAlchemyNotificationRepository(create_session_factory(engine))
        await repository.save(notification)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or default_clock
        self.model_class = NotificationModel

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception(
                "Notification repository operation failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RepositoryError(
                f"Notification repository {operation} failed", cause=e
            ) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ---------------------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------------------

    async def save(self, notification: Notification) -> None:
        notification_id = str(notification.id)

        is_new = False
        async with self._session("save") as session:
            model = await session.get(self.model_class, notification_id)

            if model is None:
                is_new = True
                session.add(NotificationMapper.to_model(notification))
            else:
                if model.version != notification.version:
                    raise ConflictError(
                        f"Notification {notification_id} was modified concurrently",
                        details={
                            "stored_version": model.version,
                            "expected_version": notification.version,
                        },
                    )
                NotificationMapper.update_model(model, notification)
                model.version = notification.version + 1

        if not is_new:
            notification.increment_version()

        logger.debug(
            "Notification saved",
            notification_id=notification_id,
            status=notification.status.value,
            version=notification.version,
        )

    async def delete(self, notification_id: NotificationId) -> bool:
        async with self._session("delete") as session:
            result = await session.execute(
                delete(self.model_class).where(self.model_class.id == str(notification_id))
            )
            deleted = result.rowcount > 0

        logger.info("Notification deleted", notification_id=str(notification_id), deleted=deleted)
        return deleted

    async def bulk_update_status(
        self, notification_ids: list[NotificationId], status: NotificationStatus
    ) -> int:
        """
        Set ``status`` on every listed notification in a single statement.

        This is an administrative override: it bypasses the aggregate's
        transition rules and bumps each row's version.
        """
        if not notification_ids:
            return 0

        async with self._session("bulk_update_status") as session:
            result = await session.execute(
                update(self.model_class)
                .where(self.model_class.id.in_([str(i) for i in notification_ids]))
                .values(
                    status=status.value,
                    updated_at=self.clock.now(),
                    version=self.model_class.version + 1,
                )
            )
            updated = result.rowcount

        logger.info(
            "Notification statuses updated",
            status=status.value,
            requested=len(notification_ids),
            updated=updated,
        )
        return updated

    # ---------------------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------------------

    async def find_by_id(self, notification_id: NotificationId) -> Notification | None:
        async with self._session("find_by_id") as session:
            model = await session.get(self.model_class, str(notification_id))
            return self._to_entity(model) if model else None

    async def find_by_recipient_id(
        self, recipient_id: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        stmt = (
            select(self.model_class)
            .where(self.model_class.recipient_id == recipient_id)
            .order_by(self.model_class.created_at.desc())
        )
        return await self._fetch("find_by_recipient_id", stmt, limit, offset)

    async def find_by_status(
        self, status: NotificationStatus, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        stmt = (
            select(self.model_class)
            .where(self.model_class.status == status.value)
            .order_by(self.model_class.created_at.asc())
        )
        return await self._fetch("find_by_status", stmt, limit, offset)

    async def find_due_scheduled(
        self, now: datetime, limit: int | None = None
    ) -> list[Notification]:
        now = ensure_utc(now)
        stmt = (
            select(self.model_class)
            .where(
                and_(
                    self.model_class.status == NotificationStatus.SCHEDULED.value,
                    self.model_class.scheduled_at <= now,
                    self._not_expired(now),
                )
            )
            .order_by(
                self.model_class.priority_level.desc(),
                self.model_class.scheduled_at.asc(),
            )
        )
        return await self._fetch("find_due_scheduled", stmt, limit)

    async def find_retryable(self, now: datetime, limit: int | None = None) -> list[Notification]:
        now = ensure_utc(now)
        stmt = (
            select(self.model_class)
            .where(
                and_(
                    self.model_class.status == NotificationStatus.RETRY.value,
                    self.model_class.attempt_count < self.model_class.max_retries,
                    self._not_expired(now),
                )
            )
            .order_by(
                self.model_class.priority_level.desc(),
                self.model_class.created_at.asc(),
            )
        )
        return await self._fetch("find_retryable", stmt, limit)

    async def find_by_priority(
        self, priority: NotificationPriority, limit: int | None = None
    ) -> list[Notification]:
        stmt = (
            select(self.model_class)
            .where(self.model_class.priority == priority.value)
            .order_by(self.model_class.created_at.asc())
        )
        return await self._fetch("find_by_priority", stmt, limit)

    async def find_expired(self, now: datetime, limit: int | None = None) -> list[Notification]:
        now = ensure_utc(now)
        stmt = (
            select(self.model_class)
            .where(
                and_(
                    self.model_class.expires_at.is_not(None),
                    self.model_class.expires_at < now,
                    self.model_class.status.in_(EXPIRABLE_STATUSES),
                )
            )
            .order_by(self.model_class.expires_at.asc())
        )
        return await self._fetch("find_expired", stmt, limit)

    async def find_by_date_range(
        self,
        start_date: datetime,
        end_date: datetime,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Notification]:
        stmt = (
            select(self.model_class)
            .where(self._created_between(start_date, end_date))
            .order_by(self.model_class.created_at.asc())
        )
        return await self._fetch("find_by_date_range", stmt, limit, offset)

    async def search_by_content(
        self, search_term: str, limit: int | None = None, offset: int = 0
    ) -> list[Notification]:
        term = search_term.strip()
        if not term:
            return []

        stmt = (
            select(self.model_class)
            .where(
                or_(
                    self.model_class.title.icontains(term, autoescape=True),
                    self.model_class.message.icontains(term, autoescape=True),
                )
            )
            .order_by(self.model_class.created_at.desc())
        )
        return await self._fetch("search_by_content", stmt, limit, offset)

    async def count_by_status(self, status: NotificationStatus) -> int:
        stmt = select(func.count(self.model_class.id)).where(
            self.model_class.status == status.value
        )
        return await self._count("count_by_status", stmt)

    async def count_by_recipient(self, recipient_id: str) -> int:
        stmt = select(func.count(self.model_class.id)).where(
            self.model_class.recipient_id == recipient_id
        )
        return await self._count("count_by_recipient", stmt)

    async def get_statistics(
        self, start_date: datetime, end_date: datetime
    ) -> NotificationStatistics:
        stmt = select(
            self.model_class.status,
            self.model_class.notification_type,
            self.model_class.priority,
            self.model_class.delivery_channels,
            self.model_class.created_at,
            self.model_class.sent_at,
        ).where(self._created_between(start_date, end_date))

        async with self._session("get_statistics") as session:
            rows = (await session.execute(stmt)).all()

        statuses: Counter[str] = Counter()
        channels: Counter[str] = Counter()
        types: Counter[str] = Counter()
        priorities: Counter[str] = Counter()
        delivery_times: list[float] = []

        for row in rows:
            statuses[row.status] += 1
            types[row.notification_type] += 1
            priorities[row.priority] += 1
            channels.update(row.delivery_channels or [])
            if row.status == NotificationStatus.SENT.value and row.sent_at is not None:
                elapsed = ensure_utc(row.sent_at) - ensure_utc(row.created_at)
                delivery_times.append(elapsed.total_seconds() * 1000)

        total = len(rows)
        sent = statuses[NotificationStatus.SENT.value]

        return NotificationStatistics(
            total_notifications=total,
            sent_notifications=sent,
            failed_notifications=statuses[NotificationStatus.FAILED.value],
            pending_notifications=statuses[NotificationStatus.PENDING.value],
            scheduled_notifications=statuses[NotificationStatus.SCHEDULED.value],
            success_rate=(sent / total * 100) if total > 0 else 0.0,
            average_delivery_time=(
                sum(delivery_times) / len(delivery_times) if delivery_times else 0.0
            ),
            channel_breakdown=dict(channels),
            type_breakdown=dict(types),
            priority_breakdown=dict(priorities),
        )

    # ---------------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------------

    def _not_expired(self, now: datetime):
        return or_(
            self.model_class.expires_at.is_(None),
            self.model_class.expires_at >= now,
        )

    def _created_between(self, start_date: datetime, end_date: datetime):
        return and_(
            self.model_class.created_at >= ensure_utc(start_date),
            self.model_class.created_at <= ensure_utc(end_date),
        )

    async def _fetch(
        self,
        operation: str,
        stmt: Select,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Notification]:
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async with self._session(operation) as session:
            models = (await session.execute(stmt)).scalars().all()
            return [self._to_entity(model) for model in models]

    async def _count(self, operation: str, stmt: Select) -> int:
        async with self._session(operation) as session:
            return (await session.execute(stmt)).scalar_one()

    def _to_entity(self, model: NotificationModel) -> Notification:
        return NotificationMapper.from_model(model, self.clock)


__all__ = ["EXPIRABLE_STATUSES", "RepositoryError", "SqlAlchemyNotificationRepository"]
