"""Notification content value object.

Holds the validated title and message plus optional image and call to
action, and renders them for each delivery channel.
"""

from typing import Any
from urllib.parse import urlparse

from courier.core.domain.base import ValueObject
from courier.core.errors import ValidationError
from courier.modules.notification.domain.enums import DeliveryChannel

MAX_TITLE_LENGTH = 100
MAX_MESSAGE_LENGTH = 2000
SMS_MAX_LENGTH = 160

_ELLIPSIS = "..."


class NotificationContent(ValueObject):
    """
    Represents what a notification says.

    Usage:
        content = NotificationContent(
            title="Your post was approved",
            message="It is now visible to everyone.",
            action_url="https://example.com/posts/42",
            action_text="View post",
        )
        content.to_sms_format()
    """

    def __init__(
        self,
        title: str,
        message: str,
        image_url: str | None = None,
        action_url: str | None = None,
        action_text: str | None = None,
    ):
        """
        Initialize content.

        Raises:
            ValidationError: If title or message is empty or too long, or a URL is malformed
        """
        super().__init__()

        self.validate_not_empty(title, "title")
        self.validate_max_length(title, MAX_TITLE_LENGTH, "title")
        self.validate_not_empty(message, "message")
        self.validate_max_length(message, MAX_MESSAGE_LENGTH, "message")

        self.title = title.strip()
        self.message = message.strip()
        self.image_url = self._validate_url(image_url, "image_url")
        self.action_url = self._validate_url(action_url, "action_url")
        self.action_text = action_text.strip() if action_text and action_text.strip() else None

        self._freeze()

    @staticmethod
    def _validate_url(url: str | None, field_name: str) -> str | None:
        if url is None or not url.strip():
            return None

        url = url.strip()
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValidationError(f"Invalid {field_name} format: {url}", field=field_name)
        return url

    def has_action(self) -> bool:
        return bool(self.action_url and self.action_text)

    def has_image(self) -> bool:
        return bool(self.image_url)

    def is_rich(self) -> bool:
        return self.has_image() or self.has_action()

    def get_preview(self, max_length: int = 100) -> str:
        """Message shortened to ``max_length`` characters, ellipsis included."""
        if len(self.message) <= max_length:
            return self.message
        return self.message[: max(max_length - len(_ELLIPSIS), 0)] + _ELLIPSIS

    @property
    def word_count(self) -> int:
        return len(self.message.split())

    @property
    def character_count(self) -> int:
        return len(self.message)

    def to_email_format(self) -> dict[str, str]:
        return {"subject": self.title, "body": self.message}

    def to_sms_format(self) -> str:
        combined = f"{self.title}: {self.message}"
        if len(combined) > SMS_MAX_LENGTH:
            return combined[: SMS_MAX_LENGTH - len(_ELLIPSIS)] + _ELLIPSIS
        return combined

    def to_push_format(self) -> dict[str, Any]:
        return {"title": self.title, "body": self.message, "image_url": self.image_url}

    def to_webhook_format(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "image_url": self.image_url,
            "action_url": self.action_url,
            "action_text": self.action_text,
        }

    def to_in_app_format(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "message": self.message}
        if self.has_image():
            data["image_url"] = self.image_url
        if self.has_action():
            data["action"] = {"url": self.action_url, "text": self.action_text}
        return data

    def for_channel(self, channel: DeliveryChannel) -> str | dict[str, Any]:
        """Render content in the shape the given channel expects."""
        renderers = {
            DeliveryChannel.EMAIL: self.to_email_format,
            DeliveryChannel.SMS: self.to_sms_format,
            DeliveryChannel.PUSH: self.to_push_format,
            DeliveryChannel.WEBHOOK: self.to_webhook_format,
            DeliveryChannel.IN_APP: self.to_in_app_format,
        }
        return renderers[channel]()

    def to_dict(self) -> dict[str, Any]:
        return self.to_webhook_format()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationContent":
        return cls(
            title=data.get("title", ""),
            message=data.get("message", ""),
            image_url=data.get("image_url"),
            action_url=data.get("action_url"),
            action_text=data.get("action_text"),
        )

    def __str__(self) -> str:
        return self.title
