"""Domain building blocks: value objects, entities and aggregate roots.

Nothing here touches I/O, logging or the clock beyond a UTC default for
``created_at``; aggregates that need a controllable clock pass their own
timestamps in.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from courier.core.errors import ValidationError

if TYPE_CHECKING:
    from courier.core.events.types import DomainEvent


def _hashable(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _hashable(v)) for k, v in value.items()))
    if isinstance(value, list | tuple):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, set):
        return frozenset(_hashable(v) for v in value)
    return value


class ValueObject(ABC):
    """
    Immutable object compared by its public attributes.

    Subclasses call ``super().__init__()``, assign attributes, then finish
    with ``self._freeze()``. Any later assignment or deletion raises
    ``AttributeError``.
    """

    def __init__(self):
        self._frozen = False

    def _freeze(self) -> None:
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{self.__class__.__name__} is immutable")
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{self.__class__.__name__} is immutable")
        super().__delattr__(name)

    def _fields(self) -> dict[str, Any]:
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}

    def __eq__(self, other: Any) -> bool:
        return type(other) is type(self) and self._fields() == other._fields()

    def __hash__(self) -> int:
        return hash((type(self).__name__, _hashable(self._fields())))

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._fields().items())
        return f"{self.__class__.__name__}({fields})"

    @abstractmethod
    def __str__(self) -> str: ...

    @staticmethod
    def validate_not_empty(value: Any, field_name: str) -> None:
        """Reject ``None`` and blank strings."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} cannot be empty", field=field_name)

    @staticmethod
    def validate_max_length(value: str, max_length: int, field_name: str) -> None:
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string", field=field_name)
        if len(value) > max_length:
            raise ValidationError(
                f"{field_name} cannot exceed {max_length} characters", field=field_name
            )


class Entity(ABC):
    """
    Mutable object with an identity that outlives its attribute values.

    Subclasses with a typed identifier override ``generate_id`` and extend
    ``_validate_entity``.
    """

    def __init__(self, entity_id: Any | None = None, created_at: datetime | None = None):
        self.id = self.generate_id() if entity_id is None else entity_id
        self.created_at = created_at or datetime.now(UTC)
        self.updated_at = self.created_at
        self._validate_entity()

    @classmethod
    def generate_id(cls) -> Any:
        return uuid4()

    def _validate_entity(self) -> None:
        if self.id is None:
            raise ValidationError("Entity id is required")
        if not isinstance(self.created_at, datetime):
            raise ValidationError("created_at must be a datetime", field="created_at")

    def mark_modified(self, at: datetime | None = None) -> None:
        self.updated_at = at or datetime.now(UTC)

    def __eq__(self, other: Any) -> bool:
        return type(other) is type(self) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"


class AggregateRoot(Entity):
    """
    Consistency boundary that queues the domain events it raises.

    ``version`` starts at 1 and is bumped by the repository on each
    successful save. Pending events are drained by one consumer through
    ``clear_events``.
    """

    def __init__(self, entity_id: Any | None = None, created_at: datetime | None = None):
        self._events: list[DomainEvent] = []
        self._version = 1
        super().__init__(entity_id, created_at)

    @property
    def version(self) -> int:
        return self._version

    def increment_version(self) -> None:
        self._version += 1

    def add_event(self, event: "DomainEvent") -> None:
        from courier.core.events.types import DomainEvent

        if not isinstance(event, DomainEvent):
            raise ValidationError("Event must be a DomainEvent instance")
        self._events.append(event)

    def get_events(self) -> list["DomainEvent"]:
        return list(self._events)

    def clear_events(self) -> list["DomainEvent"]:
        events, self._events = self._events, []
        return events

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(id={self.id}, version={self._version}, "
            f"pending_events={len(self._events)})"
        )


__all__ = ["AggregateRoot", "Entity", "ValueObject"]
