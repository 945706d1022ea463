"""Notification command handlers.

Handlers translate primitive command input into domain values, drive the
Notification aggregate, persist it, then publish what it raised.
"""

from courier.core.clock import Clock, default_clock
from courier.core.cqrs.base import CommandHandler
from courier.core.events.bus import EventBus
from courier.core.logging import get_logger
from courier.modules.notification.application.commands import (
    RecordDeliveryAttemptCommand,
    SendNotificationCommand,
)
from courier.modules.notification.domain.entities import (
    DEFAULT_MAX_RETRIES,
    Notification,
)
from courier.modules.notification.domain.enums import (
    DeliveryChannel,
    NotificationPriority,
    NotificationType,
    RecurrencePattern,
)
from courier.modules.notification.domain.errors import NotificationNotFoundError
from courier.modules.notification.domain.interfaces import (
    IMessagePublisher,
    INotificationRepository,
)
from courier.modules.notification.domain.services import DispatchRouter
from courier.modules.notification.domain.value_objects import (
    NotificationContent,
    NotificationId,
    SchedulingInfo,
)

logger = get_logger(__name__)


class SendNotificationCommandHandler(CommandHandler[SendNotificationCommand, str]):
    """Handler for creating and dispatching notifications."""

    def __init__(
        self,
        notification_repository: INotificationRepository,
        event_bus: EventBus,
        message_publisher: IMessagePublisher,
        router: DispatchRouter | None = None,
        clock: Clock | None = None,
        default_max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        """Initialize handler with dependencies."""
        super().__init__()
        self.notification_repository = notification_repository
        self.event_bus = event_bus
        self.message_publisher = message_publisher
        self.clock = clock or default_clock
        self.router = router or DispatchRouter(clock=self.clock)
        self.default_max_retries = default_max_retries

    async def handle(self, command: SendNotificationCommand) -> str:
        """Handle send notification command and return the new notification id."""
        logger.info(
            "Processing send notification command",
            recipient_id=command.recipient_id,
            notification_type=command.notification_type,
            channels=command.channels,
        )

        notification = self._build_notification(command)

        # Future sends wait in SCHEDULED until the retry scheduler picks them up;
        # everything else is handed to delivery now and reported back on PROCESSING.
        scheduling_info = notification.scheduling_info
        if scheduling_info is not None and scheduling_info.is_scheduled(self.clock.now()):
            notification.schedule(scheduling_info)
        else:
            notification.mark_as_processing()

        await self.notification_repository.save(notification)

        events = notification.clear_domain_events()
        await self.event_bus.publish_all(events, correlation_id=command.correlation_id)

        message = self.router.route(notification)
        message_id = await self.message_publisher.publish(
            message.topic, message.payload, message.attributes
        )

        logger.info(
            "Notification created and queued",
            notification_id=str(notification.id),
            topic=message.topic,
            message_id=message_id,
            event_count=len(events),
        )

        return str(notification.id)

    def _build_notification(self, command: SendNotificationCommand) -> Notification:
        now = self.clock.now()

        content = NotificationContent(
            title=command.title,
            message=command.message,
            image_url=command.image_url,
            action_url=command.action_url,
            action_text=command.action_text,
        )

        scheduling_info = None
        if command.scheduled_at is not None:
            scheduling_info = SchedulingInfo(
                scheduled_at=command.scheduled_at,
                now=now,
                timezone=command.timezone,
                recurrence=RecurrencePattern.from_string(command.recurrence)
                if command.recurrence
                else None,
            )

        return Notification(
            recipient_id=command.recipient_id,
            notification_type=NotificationType.from_string(command.notification_type),
            content=content,
            delivery_channels=[
                DeliveryChannel.from_string(channel) for channel in command.channels
            ],
            priority=NotificationPriority.from_string(command.priority),
            scheduling_info=scheduling_info,
            metadata=command.metadata,
            max_retries=self.default_max_retries
            if command.max_retries is None
            else command.max_retries,
            expires_at=command.expires_at,
            template_id=command.template_id,
            template_variables=command.template_variables,
            clock=self.clock,
        )

    @property
    def command_type(self) -> type[SendNotificationCommand]:
        return SendNotificationCommand


class RecordDeliveryAttemptCommandHandler(
    CommandHandler[RecordDeliveryAttemptCommand, str]
):
    """Handler applying a channel worker's delivery report to a notification."""

    def __init__(
        self,
        notification_repository: INotificationRepository,
        event_bus: EventBus,
        clock: Clock | None = None,
    ):
        """Initialize handler with dependencies."""
        super().__init__()
        self.notification_repository = notification_repository
        self.event_bus = event_bus
        self.clock = clock or default_clock

    async def handle(self, command: RecordDeliveryAttemptCommand) -> str:
        """Handle the delivery report and return the resulting status value."""
        notification_id = NotificationId.from_string(command.notification_id)
        notification = await self.notification_repository.find_by_id(notification_id)
        if notification is None:
            raise NotificationNotFoundError(command.notification_id)

        notification.record_delivery_attempt(
            channel=DeliveryChannel.from_string(command.channel),
            success=command.success,
            error=command.error,
            external_id=command.external_id,
            response_code=command.response_code,
            response_time=command.response_time,
            metadata=command.metadata,
        )

        await self.notification_repository.save(notification)

        events = notification.clear_domain_events()
        await self.event_bus.publish_all(events, correlation_id=command.correlation_id)

        log = logger.info if command.success else logger.warning
        log(
            "Delivery attempt recorded",
            notification_id=command.notification_id,
            channel=command.channel,
            success=command.success,
            status=notification.status.value,
            attempt_count=notification.attempt_count,
            error=command.error,
        )

        return notification.status.value

    @property
    def command_type(self) -> type[RecordDeliveryAttemptCommand]:
        return RecordDeliveryAttemptCommand


__all__ = ["RecordDeliveryAttemptCommandHandler", "SendNotificationCommandHandler"]
