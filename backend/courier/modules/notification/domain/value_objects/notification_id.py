"""Notification identifier value object."""

from typing import Any
from uuid import UUID, uuid4

from courier.core.domain.base import ValueObject
from courier.core.errors import ValidationError


class NotificationId(ValueObject):
    """Opaque, immutable notification identity backed by a UUID."""

    def __init__(self, value: UUID | str):
        super().__init__()

        if isinstance(value, UUID):
            self.value = value
        elif isinstance(value, str):
            try:
                self.value = UUID(value.strip())
            except ValueError as e:
                raise ValidationError(
                    f"Invalid notification id: {value!r}", field="notification_id"
                ) from e
        else:
            raise ValidationError(
                f"Notification id must be a UUID or string, got {type(value).__name__}",
                field="notification_id",
            )

        self._freeze()

    @classmethod
    def generate(cls) -> "NotificationId":
        return cls(uuid4())

    @classmethod
    def from_string(cls, value: str) -> "NotificationId":
        """
        Rebuild an id from its persisted string form.

        Raises:
            ValidationError: If the string is not a valid UUID
        """
        return cls(value)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, NotificationId):
            return self.value == other.value
        return False

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return str(self.value)
