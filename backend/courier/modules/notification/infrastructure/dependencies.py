"""Notification module dependency configuration."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courier.core.clock import Clock, default_clock
from courier.core.config import Settings, get_settings
from courier.core.database import create_engine, create_session_factory
from courier.core.events import EventBus, InMemoryEventBus
from courier.core.logging import get_logger
from courier.modules.notification.application.commands.handlers import (
    RecordDeliveryAttemptCommandHandler,
    SendNotificationCommandHandler,
)
from courier.modules.notification.application.services import RetryScheduler
from courier.modules.notification.domain.interfaces import IMessagePublisher
from courier.modules.notification.domain.services import DispatchRouter
from courier.modules.notification.infrastructure.repositories import (
    SqlAlchemyNotificationRepository,
)

logger = get_logger(__name__)


@dataclass
class NotificationModule:
    """Wired notification collaborators sharing one repository, bus and clock."""

    repository: SqlAlchemyNotificationRepository
    event_bus: EventBus
    router: DispatchRouter
    send_notification: SendNotificationCommandHandler
    record_delivery_attempt: RecordDeliveryAttemptCommandHandler
    retry_scheduler: RetryScheduler


def build_router(settings: Settings, clock: Clock | None = None) -> DispatchRouter:
    return DispatchRouter(
        created_topic=settings.topic_created,
        priority_topic=settings.topic_priority,
        scheduled_topic=settings.topic_scheduled,
        clock=clock,
    )


def configure_notification_module(
    message_publisher: IMessagePublisher,
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    event_bus: EventBus | None = None,
    clock: Clock | None = None,
) -> NotificationModule:
    """
    Wire the notification module from settings.

    The message publisher is the only collaborator without a default; the
    transport client is supplied by the hosting process. The returned event
    bus still has to be started by the caller.
    """
    settings = settings or get_settings()
    clock = clock or default_clock
    session_factory = session_factory or create_session_factory(create_engine(settings))
    event_bus = event_bus or InMemoryEventBus()

    repository = SqlAlchemyNotificationRepository(session_factory, clock=clock)
    router = build_router(settings, clock)

    module = NotificationModule(
        repository=repository,
        event_bus=event_bus,
        router=router,
        send_notification=SendNotificationCommandHandler(
            notification_repository=repository,
            event_bus=event_bus,
            message_publisher=message_publisher,
            router=router,
            clock=clock,
            default_max_retries=settings.default_max_retries,
        ),
        record_delivery_attempt=RecordDeliveryAttemptCommandHandler(
            notification_repository=repository,
            event_bus=event_bus,
            clock=clock,
        ),
        retry_scheduler=RetryScheduler(
            notification_repository=repository,
            message_publisher=message_publisher,
            router=router,
            clock=clock,
            batch_size=settings.retry_batch_size,
        ),
    )

    logger.info(
        "Notification module configured",
        environment=settings.environment.value,
        topics=[router.created_topic, router.priority_topic, router.scheduled_topic],
        retry_batch_size=settings.retry_batch_size,
    )
    return module


__all__ = ["NotificationModule", "build_router", "configure_notification_module"]
