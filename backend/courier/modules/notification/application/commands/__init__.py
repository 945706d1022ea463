"""Notification application commands.

Commands carry primitive input (strings for enums, plain datetimes) from
the outer layers; handlers turn them into domain values.
"""

from datetime import datetime
from typing import Any

from courier.core.cqrs.base import Command
from courier.core.errors import ValidationError


class SendNotificationCommand(Command):
    """Command to create and dispatch a notification."""

    def __init__(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        channels: list[str],
        priority: str = "NORMAL",
        scheduled_at: datetime | None = None,
        timezone: str | None = None,
        recurrence: str | None = None,
        image_url: str | None = None,
        action_url: str | None = None,
        action_text: str | None = None,
        template_id: str | None = None,
        template_variables: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        expires_at: datetime | None = None,
        max_retries: int | None = None,
    ):
        super().__init__()

        self.recipient_id = recipient_id
        self.notification_type = notification_type
        self.title = title
        self.message = message
        self.channels = list(channels or [])
        self.priority = priority
        self.scheduled_at = scheduled_at
        self.timezone = timezone
        self.recurrence = recurrence
        self.image_url = image_url
        self.action_url = action_url
        self.action_text = action_text
        self.template_id = template_id
        self.template_variables = template_variables or {}
        self.metadata = metadata or {}
        self.expires_at = expires_at
        self.max_retries = max_retries

        self._freeze()

    def _validate_command(self) -> None:
        if not self.recipient_id:
            raise ValidationError("recipient_id is required", field="recipient_id")

        if not self.channels:
            raise ValidationError("At least one channel is required", field="channels")

        if (
            self.scheduled_at
            and self.expires_at
            and self.scheduled_at > self.expires_at
        ):
            raise ValidationError(
                "Scheduled time cannot be after expiration time", field="scheduled_at"
            )


class RecordDeliveryAttemptCommand(Command):
    """Command reporting the outcome of one delivery try from a channel worker."""

    def __init__(
        self,
        notification_id: str,
        channel: str,
        success: bool,
        error: str | None = None,
        external_id: str | None = None,
        response_code: int | None = None,
        response_time: int | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__()

        self.notification_id = notification_id
        self.channel = channel
        self.success = success
        self.error = error
        self.external_id = external_id
        self.response_code = response_code
        self.response_time = response_time
        self.metadata = metadata or {}

        self._freeze()

    def _validate_command(self) -> None:
        if not self.notification_id:
            raise ValidationError("notification_id is required", field="notification_id")

        if not self.channel:
            raise ValidationError("channel is required", field="channel")

        if not self.success and not self.error and self.response_code is None:
            raise ValidationError(
                "A failed attempt needs an error or a response code", field="error"
            )


__all__ = ["RecordDeliveryAttemptCommand", "SendNotificationCommand"]
