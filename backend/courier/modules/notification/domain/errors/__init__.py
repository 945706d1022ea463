"""Notification domain errors.

Raised synchronously at the point of violation. Translating them into
transport-level responses and logging them is left to the caller.
"""

from typing import Any

from courier.core.errors import DomainError, NotFoundError, ValidationError


class NotificationError(DomainError):
    """Base error for notification domain."""

    default_code = "NOTIFICATION_ERROR"


class InvalidStateTransitionError(NotificationError):
    """Raised when an operation is attempted from an incompatible status."""

    default_code = "INVALID_STATE_TRANSITION"
    status_code = 409

    def __init__(
        self,
        current_status: Any,
        target_status: Any | None = None,
        operation: str | None = None,
        reason: str | None = None,
        **kwargs,
    ):
        current = getattr(current_status, "value", current_status)
        target = getattr(target_status, "value", target_status)

        if reason:
            message = reason
        elif operation:
            message = f"Cannot {operation} notification in status {current}"
        else:
            message = f"Cannot transition notification from {current} to {target}"

        super().__init__(
            message=message,
            details={
                "current_status": current,
                "target_status": target,
                "operation": operation,
            },
            **kwargs,
        )
        self.current_status = current_status
        self.target_status = target_status
        self.operation = operation


class NotificationExpiredError(InvalidStateTransitionError):
    """Raised when processing is attempted on an expired notification."""

    default_code = "NOTIFICATION_EXPIRED"

    def __init__(self, notification_id: Any, current_status: Any, **kwargs):
        super().__init__(
            current_status=current_status,
            operation="process",
            reason=f"Notification {notification_id} has expired",
            **kwargs,
        )
        self.details["notification_id"] = str(notification_id)


class InvalidConfigurationError(ValidationError):
    """Raised when an unknown channel, priority, status or type string is given."""

    default_code = "INVALID_CONFIGURATION"

    def __init__(self, kind: str, value: Any, allowed: list[str] | None = None, **kwargs):
        message = f"Invalid {kind}: {value}"
        super().__init__(message, field=kind, **kwargs)
        self.details["value"] = str(value)
        if allowed:
            self.details["allowed"] = allowed


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found."""

    def __init__(self, notification_id: Any, **kwargs):
        super().__init__(resource="Notification", identifier=notification_id, **kwargs)


class DeliveryChannelNotRequestedError(ValidationError):
    """Raised when an attempt is reported for a channel the notification did not request."""

    default_code = "CHANNEL_NOT_REQUESTED"

    def __init__(self, channel: Any, requested: list[Any], **kwargs):
        channel_value = getattr(channel, "value", channel)
        requested_values = [getattr(c, "value", c) for c in requested]
        super().__init__(
            f"Channel {channel_value} was not requested for this notification",
            field="channel",
            **kwargs,
        )
        self.details["requested_channels"] = requested_values


__all__ = [
    "DeliveryChannelNotRequestedError",
    "InvalidConfigurationError",
    "InvalidStateTransitionError",
    "NotificationError",
    "NotificationExpiredError",
    "NotificationNotFoundError",
]
