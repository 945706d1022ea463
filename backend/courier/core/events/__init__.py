"""Domain event primitives and the in-process event bus."""

from .bus import EventBus, EventBusError, EventProcessingError, InMemoryEventBus
from .types import DomainEvent, EventMetadata

__all__ = [
    "DomainEvent",
    "EventBus",
    "EventBusError",
    "EventMetadata",
    "EventProcessingError",
    "InMemoryEventBus",
]
