"""Notification aggregate root.

Owns the status state machine, the delivery attempt history and the retry
policy. Every mutating operation either succeeds and returns the events it
raised (they are also queued on the aggregate until drained) or raises a
domain error without changing state.
"""

from datetime import datetime, timedelta
from typing import Any

from courier.core.clock import Clock, default_clock, ensure_utc
from courier.core.domain.base import AggregateRoot
from courier.core.errors import ValidationError
from courier.core.events.types import DomainEvent
from courier.modules.notification.domain.enums import (
    DeliveryChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from courier.modules.notification.domain.errors import (
    DeliveryChannelNotRequestedError,
    InvalidStateTransitionError,
    NotificationExpiredError,
)
from courier.modules.notification.domain.events import (
    NotificationCreated,
    NotificationFailed,
    NotificationScheduled,
    NotificationSent,
)
from courier.modules.notification.domain.value_objects import (
    DeliveryAttempt,
    NotificationContent,
    NotificationId,
    SchedulingInfo,
)

DEFAULT_MAX_RETRIES = 3
MAX_RETRIES_EXCEEDED = "Max retries exceeded"
NON_RETRYABLE_FAILURE = "Non-retryable delivery failure"


class Notification(AggregateRoot):
    """
    A message to one recipient over one or more channels.

    Build a fresh notification with the constructor (status PENDING, raises
    ``NotificationCreated``) or restore a persisted one with ``rehydrate``
    (no events).

    Usage:
        notification = Notification(
            recipient_id="user-42",
            notification_type=NotificationType.POST_APPROVED,
            content=NotificationContent("Approved", "Your post is live"),
            delivery_channels=[DeliveryChannel.EMAIL, DeliveryChannel.PUSH],
            priority=NotificationPriority.HIGH,
        )
        notification.mark_as_processing()
        events = notification.record_delivery_attempt(DeliveryChannel.EMAIL, success=True)
    """

    def __init__(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        content: NotificationContent,
        delivery_channels: list[DeliveryChannel],
        priority: NotificationPriority = NotificationPriority.NORMAL,
        scheduling_info: SchedulingInfo | None = None,
        metadata: dict[str, Any] | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        expires_at: datetime | None = None,
        template_id: str | None = None,
        template_variables: dict[str, Any] | None = None,
        notification_id: NotificationId | None = None,
        clock: Clock | None = None,
    ):
        """
        Create a new notification in PENDING status.

        Raises:
            ValidationError: If any field is missing or malformed
        """
        self._clock = clock or default_clock
        super().__init__(notification_id, created_at=self._clock.now())

        self._initialize(
            recipient_id=recipient_id,
            notification_type=notification_type,
            content=content,
            delivery_channels=delivery_channels,
            priority=priority,
            scheduling_info=scheduling_info,
            metadata=metadata,
            max_retries=max_retries,
            expires_at=expires_at,
            template_id=template_id,
            template_variables=template_variables,
            status=NotificationStatus.PENDING,
            delivery_attempts=[],
        )

        self._raise(
            NotificationCreated(
                notification_id=str(self.id),
                recipient_id=self._recipient_id,
                notification_type=self._type.value,
                priority=self._priority.value,
                is_scheduled=bool(
                    scheduling_info and scheduling_info.is_scheduled(self.created_at)
                ),
                created_at=self.created_at,
            )
        )

    @classmethod
    def rehydrate(
        cls,
        notification_id: NotificationId,
        recipient_id: str,
        notification_type: NotificationType,
        content: NotificationContent,
        delivery_channels: list[DeliveryChannel],
        priority: NotificationPriority,
        status: NotificationStatus,
        created_at: datetime,
        updated_at: datetime | None = None,
        scheduling_info: SchedulingInfo | None = None,
        metadata: dict[str, Any] | None = None,
        delivery_attempts: list[DeliveryAttempt] | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        expires_at: datetime | None = None,
        template_id: str | None = None,
        template_variables: dict[str, Any] | None = None,
        version: int = 1,
        clock: Clock | None = None,
    ) -> "Notification":
        """
        Restore a persisted notification without raising creation events.

        Runs the same field validation as the constructor plus a consistency
        check between status and attempt history.

        Raises:
            ValidationError: If the persisted state is malformed or inconsistent
        """
        if not isinstance(notification_id, NotificationId):
            raise ValidationError(
                "notification_id must be a NotificationId", field="notification_id"
            )
        if not isinstance(created_at, datetime):
            raise ValidationError("created_at must be a datetime", field="created_at")

        notification = cls.__new__(cls)
        notification._clock = clock or default_clock
        AggregateRoot.__init__(notification, notification_id, created_at=ensure_utc(created_at))

        notification._initialize(
            recipient_id=recipient_id,
            notification_type=notification_type,
            content=content,
            delivery_channels=delivery_channels,
            priority=priority,
            scheduling_info=scheduling_info,
            metadata=metadata,
            max_retries=max_retries,
            expires_at=expires_at,
            template_id=template_id,
            template_variables=template_variables,
            status=status,
            delivery_attempts=list(delivery_attempts or []),
        )
        notification._validate_history()

        notification.updated_at = ensure_utc(updated_at) if updated_at else notification.created_at
        if not isinstance(version, int) or version < 1:
            raise ValidationError("version must be a positive integer", field="version")
        notification._version = version
        return notification

    def _initialize(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        content: NotificationContent,
        delivery_channels: list[DeliveryChannel],
        priority: NotificationPriority,
        scheduling_info: SchedulingInfo | None,
        metadata: dict[str, Any] | None,
        max_retries: int,
        expires_at: datetime | None,
        template_id: str | None,
        template_variables: dict[str, Any] | None,
        status: NotificationStatus,
        delivery_attempts: list[DeliveryAttempt],
    ) -> None:
        if not isinstance(recipient_id, str) or not recipient_id.strip():
            raise ValidationError("recipient_id is required", field="recipient_id")
        if not isinstance(notification_type, NotificationType):
            raise ValidationError(
                "notification_type must be a NotificationType", field="notification_type"
            )
        if not isinstance(content, NotificationContent):
            raise ValidationError("content must be a NotificationContent", field="content")
        if not isinstance(priority, NotificationPriority):
            raise ValidationError("priority must be a NotificationPriority", field="priority")
        if not isinstance(status, NotificationStatus):
            raise ValidationError("status must be a NotificationStatus", field="status")
        if scheduling_info is not None and not isinstance(scheduling_info, SchedulingInfo):
            raise ValidationError(
                "scheduling_info must be a SchedulingInfo", field="scheduling_info"
            )
        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 1:
            raise ValidationError("max_retries must be a positive integer", field="max_retries")
        if expires_at is not None and not isinstance(expires_at, datetime):
            raise ValidationError("expires_at must be a datetime", field="expires_at")
        if any(not isinstance(attempt, DeliveryAttempt) for attempt in delivery_attempts):
            raise ValidationError(
                "delivery_attempts must contain DeliveryAttempt values",
                field="delivery_attempts",
            )

        self._recipient_id = recipient_id.strip()
        self._type = notification_type
        self._content = content
        self._delivery_channels = self._validate_channels(delivery_channels)
        self._priority = priority
        self._scheduling_info = scheduling_info
        self._metadata = dict(metadata or {})
        self._max_retries = max_retries
        self._expires_at = ensure_utc(expires_at) if expires_at else None
        self._template_id = template_id
        self._template_variables = dict(template_variables or {})
        self._status = status
        self._delivery_attempts = delivery_attempts

    @classmethod
    def generate_id(cls) -> NotificationId:
        return NotificationId.generate()

    def _validate_entity(self) -> None:
        super()._validate_entity()
        if not isinstance(self.id, NotificationId):
            raise ValidationError("Notification id must be a NotificationId")

    @staticmethod
    def _validate_channels(channels: list[DeliveryChannel]) -> list[DeliveryChannel]:
        if not channels:
            raise ValidationError(
                "At least one delivery channel is required", field="delivery_channels"
            )

        unique: list[DeliveryChannel] = []
        for channel in channels:
            if not isinstance(channel, DeliveryChannel):
                raise ValidationError(
                    f"Invalid delivery channel: {channel!r}", field="delivery_channels"
                )
            if channel not in unique:
                unique.append(channel)
        return unique

    def _validate_history(self) -> None:
        attempts = self._delivery_attempts

        if self._status in (NotificationStatus.PENDING, NotificationStatus.SCHEDULED) and attempts:
            raise ValidationError(
                f"A {self._status.value} notification cannot have delivery attempts",
                field="delivery_attempts",
            )
        if self._status == NotificationStatus.SCHEDULED and self._scheduling_info is None:
            raise ValidationError(
                "A SCHEDULED notification requires scheduling info", field="scheduling_info"
            )
        if self._status == NotificationStatus.RETRY and (not attempts or attempts[-1].success):
            raise ValidationError(
                "A RETRY notification must end with a failed attempt",
                field="delivery_attempts",
            )
        if any(attempt.success for attempt in attempts[:-1]):
            raise ValidationError(
                "Only the last delivery attempt can be successful",
                field="delivery_attempts",
            )
        for attempt in attempts:
            if attempt.channel not in self._delivery_channels:
                raise DeliveryChannelNotRequestedError(attempt.channel, self._delivery_channels)

    # ---------------------------------------------------------------------------------
    # Read side
    # ---------------------------------------------------------------------------------

    @property
    def recipient_id(self) -> str:
        return self._recipient_id

    @property
    def notification_type(self) -> NotificationType:
        return self._type

    @property
    def content(self) -> NotificationContent:
        return self._content

    @property
    def status(self) -> NotificationStatus:
        return self._status

    @property
    def priority(self) -> NotificationPriority:
        return self._priority

    @property
    def delivery_channels(self) -> list[DeliveryChannel]:
        return list(self._delivery_channels)

    @property
    def scheduling_info(self) -> SchedulingInfo | None:
        return self._scheduling_info

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def delivery_attempts(self) -> list[DeliveryAttempt]:
        return list(self._delivery_attempts)

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    @property
    def template_id(self) -> str | None:
        return self._template_id

    @property
    def template_variables(self) -> dict[str, Any]:
        return dict(self._template_variables)

    @property
    def attempt_count(self) -> int:
        return len(self._delivery_attempts)

    @property
    def last_attempt(self) -> DeliveryAttempt | None:
        return self._delivery_attempts[-1] if self._delivery_attempts else None

    def attempts_for_channel(self, channel: DeliveryChannel) -> list[DeliveryAttempt]:
        return [attempt for attempt in self._delivery_attempts if attempt.channel == channel]

    def can_transition_to(self, status: NotificationStatus) -> bool:
        return self._status.can_transition_to(status)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True iff an expiry is set and strictly in the past, evaluated on every call."""
        if self._expires_at is None:
            return False
        return self._now(now) > self._expires_at

    def can_be_processed(self, now: datetime | None = None) -> bool:
        return not self.is_expired(now) and self._status.is_processable()

    def should_retry(self, now: datetime | None = None) -> bool:
        return (
            self._status == NotificationStatus.RETRY
            and self.attempt_count < self._max_retries
            and not self.is_expired(now)
        )

    def is_due(self, now: datetime | None = None) -> bool:
        """Whether a dispatcher should pick this notification up now."""
        now = self._now(now)
        if not self.can_be_processed(now):
            return False
        if self._status == NotificationStatus.RETRY:
            retry_at = self.next_retry_at()
            return retry_at is None or retry_at <= now
        if self._scheduling_info is not None:
            return self._scheduling_info.is_due(now)
        return True

    def next_retry_delay(self) -> int | None:
        """
        Advisory backoff in milliseconds before the next try.

        Uses the channel of the latest failed attempt, with the number of
        earlier failures on that channel as the exponent.
        """
        last = self.last_attempt
        if last is None or last.success:
            return None
        failures_on_channel = sum(
            1 for attempt in self.attempts_for_channel(last.channel) if not attempt.success
        )
        return last.channel.get_retry_delay(failures_on_channel - 1)

    def next_retry_at(self) -> datetime | None:
        delay = self.next_retry_delay()
        if delay is None:
            return None
        return self.last_attempt.attempted_at + timedelta(milliseconds=delay)

    def get_domain_events(self) -> list[DomainEvent]:
        return self.get_events()

    def clear_domain_events(self) -> list[DomainEvent]:
        """Drain pending events; the caller becomes responsible for publishing them."""
        return self.clear_events()

    # ---------------------------------------------------------------------------------
    # Write side
    # ---------------------------------------------------------------------------------

    def schedule(self, scheduling_info: SchedulingInfo) -> list[DomainEvent]:
        """
        Defer a pending notification.

        Raises:
            InvalidStateTransitionError: If the notification is not PENDING
        """
        if not isinstance(scheduling_info, SchedulingInfo):
            raise ValidationError(
                "scheduling_info must be a SchedulingInfo", field="scheduling_info"
            )
        if self._status != NotificationStatus.PENDING:
            raise InvalidStateTransitionError(
                self._status, NotificationStatus.SCHEDULED, operation="schedule"
            )

        now = self._now()
        self._scheduling_info = scheduling_info
        self._set_status(NotificationStatus.SCHEDULED, now)
        return self._raise(
            NotificationScheduled(
                notification_id=str(self.id),
                recipient_id=self._recipient_id,
                scheduled_at=scheduling_info.scheduled_at,
                scheduled_on=now,
            )
        )

    def mark_as_processing(self) -> list[DomainEvent]:
        """
        Hand the notification to delivery.

        Raises:
            NotificationExpiredError: If the notification has expired
            InvalidStateTransitionError: If the status is not PENDING, SCHEDULED or RETRY
        """
        now = self._now()
        if self.is_expired(now):
            raise NotificationExpiredError(self.id, self._status)
        if not self._status.is_processable():
            raise InvalidStateTransitionError(
                self._status, NotificationStatus.PROCESSING, operation="process"
            )

        self._set_status(NotificationStatus.PROCESSING, now)
        return []

    def record_delivery_attempt(
        self,
        channel: DeliveryChannel,
        success: bool,
        error: str | None = None,
        external_id: str | None = None,
        response_code: int | None = None,
        response_time: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> list[DomainEvent]:
        """
        Record the outcome of one delivery try and apply the retry policy.

        Success moves to SENT. A failure moves to FAILED when the attempt is
        not retryable or the retry budget is spent, otherwise to RETRY.

        Raises:
            InvalidStateTransitionError: If the notification is not PROCESSING
            DeliveryChannelNotRequestedError: If the channel was not requested
        """
        if self._status != NotificationStatus.PROCESSING:
            raise InvalidStateTransitionError(
                self._status, operation="record a delivery attempt for"
            )
        if channel not in self._delivery_channels:
            raise DeliveryChannelNotRequestedError(channel, self._delivery_channels)

        now = self._now()
        attempt = DeliveryAttempt(
            channel=channel,
            attempted_at=now,
            success=success,
            error=error,
            external_id=external_id,
            response_code=response_code,
            response_time=response_time,
            metadata=metadata,
        )
        self._delivery_attempts.append(attempt)

        if attempt.success:
            return self._complete(channel, now)

        if not attempt.is_retryable():
            return self._fail(error or NON_RETRYABLE_FAILURE, now)

        if self.attempt_count >= self._max_retries:
            return self._fail(error or MAX_RETRIES_EXCEEDED, now)

        self._set_status(NotificationStatus.RETRY, now)
        return []

    def mark_as_sent(self, channel: DeliveryChannel | None = None) -> list[DomainEvent]:
        """
        Mark delivered without recording an attempt.

        Raises:
            InvalidStateTransitionError: If the status does not allow SENT
        """
        self._ensure_transition(NotificationStatus.SENT, "mark as sent")
        return self._complete(channel, self._now())

    def mark_as_failed(self, reason: str) -> list[DomainEvent]:
        """
        Give up on the notification.

        Raises:
            ValidationError: If no reason is given
            InvalidStateTransitionError: If the status does not allow FAILED
        """
        if not reason or not str(reason).strip():
            raise ValidationError("A failure reason is required", field="reason")
        self._ensure_transition(NotificationStatus.FAILED, "mark as failed")
        return self._fail(str(reason).strip(), self._now())

    def cancel(self) -> list[DomainEvent]:
        self._ensure_transition(NotificationStatus.CANCELLED, "cancel")
        self._set_status(NotificationStatus.CANCELLED, self._now())
        return []

    def mark_as_expired(self) -> list[DomainEvent]:
        self._ensure_transition(NotificationStatus.EXPIRED, "expire")
        self._set_status(NotificationStatus.EXPIRED, self._now())
        return []

    def requeue_for_retry(self, extra_attempts: int = 1) -> list[DomainEvent]:
        """
        Recover a FAILED notification back into RETRY.

        Grows ``max_retries`` so the notification has ``extra_attempts`` tries
        left after re-entering the retry loop.

        Raises:
            ValidationError: If extra_attempts is not positive
            NotificationExpiredError: If the notification has expired
            InvalidStateTransitionError: If the notification is not FAILED
        """
        if isinstance(extra_attempts, bool) or not isinstance(extra_attempts, int) or extra_attempts < 1:
            raise ValidationError(
                "extra_attempts must be a positive integer", field="extra_attempts"
            )
        self._ensure_transition(NotificationStatus.RETRY, "requeue")

        now = self._now()
        if self.is_expired(now):
            raise NotificationExpiredError(self.id, self._status)

        self._max_retries = max(self._max_retries, self.attempt_count + extra_attempts)
        self._set_status(NotificationStatus.RETRY, now)
        return []

    def update_content(self, content: NotificationContent) -> list[DomainEvent]:
        """
        Replace the content of a pending notification.

        Raises:
            InvalidStateTransitionError: If the notification is not PENDING
        """
        if not isinstance(content, NotificationContent):
            raise ValidationError("content must be a NotificationContent", field="content")
        if self._status != NotificationStatus.PENDING:
            raise InvalidStateTransitionError(self._status, operation="update content of")

        self._content = content
        self.mark_modified(self._now())
        return []

    # ---------------------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------------------

    def _now(self, now: datetime | None = None) -> datetime:
        return ensure_utc(now) if now is not None else self._clock.now()

    def _ensure_transition(self, target: NotificationStatus, operation: str) -> None:
        if not self._status.can_transition_to(target):
            raise InvalidStateTransitionError(self._status, target, operation=operation)

    def _set_status(self, status: NotificationStatus, now: datetime) -> None:
        self._status = status
        self.mark_modified(now)

    def _complete(self, channel: DeliveryChannel | None, now: datetime) -> list[DomainEvent]:
        self._set_status(NotificationStatus.SENT, now)
        return self._raise(
            NotificationSent(
                notification_id=str(self.id),
                recipient_id=self._recipient_id,
                channel=channel.value if channel else "unknown",
                attempt_count=self.attempt_count,
                sent_at=now,
            )
        )

    def _fail(self, reason: str, now: datetime) -> list[DomainEvent]:
        self._set_status(NotificationStatus.FAILED, now)
        return self._raise(
            NotificationFailed(
                notification_id=str(self.id),
                recipient_id=self._recipient_id,
                reason=reason,
                attempt_count=self.attempt_count,
                failed_at=now,
            )
        )

    def _raise(self, *events: DomainEvent) -> list[DomainEvent]:
        for event in events:
            self.add_event(event)
        return list(events)

    def __repr__(self) -> str:
        return (
            f"Notification(id={self.id}, status={self._status.value}, "
            f"priority={self._priority.value}, attempts={self.attempt_count})"
        )
