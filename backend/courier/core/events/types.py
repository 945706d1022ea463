"""Domain event base types.

An event is an immutable fact raised by an aggregate. Its payload is what
downstream consumers receive; ``EventMetadata`` travels beside it for
tracing (identity, aggregate reference, correlation and time).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from courier.core.errors import ValidationError

MAX_EVENT_TYPE_LENGTH = 100


@dataclass
class EventMetadata:
    """Tracing envelope for a single event. Timestamps are normalised to UTC."""

    event_id: UUID = field(default_factory=uuid4)
    event_type: str = ""
    aggregate_id: str | None = None
    aggregate_type: str | None = None
    correlation_id: str | None = None
    causation_id: UUID | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    version: str = "1.0"
    source: str = "courier"

    def __post_init__(self):
        self.validate()
        self.correlation_id = self.correlation_id or str(uuid4())

    def validate(self) -> None:
        if not isinstance(self.event_id, UUID):
            raise ValidationError("event_id must be a UUID", field="event_id")
        if not isinstance(self.event_type, str) or len(self.event_type) > MAX_EVENT_TYPE_LENGTH:
            raise ValidationError(
                f"event_type must be a string of at most {MAX_EVENT_TYPE_LENGTH} characters",
                field="event_type",
            )
        if not isinstance(self.timestamp, datetime):
            raise ValidationError("timestamp must be a datetime", field="timestamp")
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=UTC)

    def to_dict(self) -> dict[str, Any]:
        data = {k: getattr(self, k) for k in self.__dataclass_fields__}
        data["event_id"] = str(self.event_id)
        data["causation_id"] = str(self.causation_id) if self.causation_id else None
        data["timestamp"] = self.timestamp.isoformat()
        return data


def _json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class DomainEvent(ABC):
    """
    Base class for domain events.

    Subclasses set their payload attributes first and then call
    ``super().__init__``, which validates both metadata and payload.
    ``payload_fields`` lists what is published; ``event_name`` overrides
    the class name on the wire.
    """

    event_name: str = ""
    event_version: str = "1.0"

    def __init__(self, metadata: EventMetadata | None = None, **kwargs: Any):
        if metadata is None:
            metadata = EventMetadata(version=self.event_version)
        metadata.event_type = type(self).__name__
        self.metadata = metadata

        # Extra keyword arguments become attributes unless the subclass set them.
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

        self.validate()

    @property
    def event_type(self) -> str:
        return type(self).__name__

    @property
    def event_id(self) -> UUID:
        return self.metadata.event_id

    @property
    def timestamp(self) -> datetime:
        return self.metadata.timestamp

    @property
    def correlation_id(self) -> str | None:
        return self.metadata.correlation_id

    def validate(self) -> None:
        self.metadata.validate()
        self.validate_payload()

    @abstractmethod
    def validate_payload(self) -> None:
        """Raise ``ValidationError`` when the payload is incomplete."""

    @abstractmethod
    def payload_fields(self) -> dict[str, Any]:
        """Event-specific fields, before JSON conversion."""

    def to_payload(self) -> dict[str, Any]:
        payload = {k: _json_value(v) for k, v in self.payload_fields().items()}
        payload["event_name"] = self.event_name or self.event_type
        payload["version"] = self.metadata.version
        return payload

    def to_dict(self) -> dict[str, Any]:
        return {**self.to_payload(), "metadata": self.metadata.to_dict()}

    def __repr__(self) -> str:
        return (
            f"{self.event_type}(event_id={self.event_id}, "
            f"aggregate_id={self.metadata.aggregate_id}, "
            f"correlation_id={self.correlation_id})"
        )


__all__ = ["DomainEvent", "EventMetadata"]
