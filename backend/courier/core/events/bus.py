"""In-process event bus.

Handlers are registered per event class and also receive events of its
subclasses. Publishing runs sync handlers in registration order, then awaits
async handlers together. A failing handler never stops the others; all
failures are logged and reported as one ``EventProcessingError``::

    bus = InMemoryEventBus()
    await bus.start()
    bus.subscribe(NotificationFailed, on_failed)
    await bus.publish_all(notification.clear_domain_events())
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from courier.core.errors import InfrastructureError, ValidationError
from courier.core.events.types import DomainEvent
from courier.core.logging import get_logger

logger = get_logger(__name__)

EventHandlerType = Callable[[DomainEvent], None] | Callable[[DomainEvent], Awaitable[None]]


class EventBusError(InfrastructureError):
    default_code = "EVENT_BUS_ERROR"


class EventProcessingError(EventBusError):
    """One or more handlers raised while processing an event."""

    default_code = "EVENT_PROCESSING_ERROR"


def _handler_name(handler: EventHandlerType) -> str:
    return getattr(handler, "__qualname__", repr(handler))


class EventBus(ABC):
    """Publish/subscribe contract for domain events."""

    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def publish(self, event: DomainEvent, correlation_id: str | None = None) -> None:
        """
        Deliver ``event`` to its subscribers.

        Raises:
            EventBusError: If the bus is not running
            EventProcessingError: If any handler fails
        """

    @abstractmethod
    def subscribe(self, event_type: type[DomainEvent], handler: EventHandlerType) -> None: ...

    @abstractmethod
    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandlerType) -> None: ...

    async def publish_all(
        self, events: Iterable[DomainEvent], correlation_id: str | None = None
    ) -> None:
        for event in events:
            await self.publish(event, correlation_id)


class InMemoryEventBus(EventBus):
    """Single-process bus used by the service and in tests."""

    def __init__(self):
        self._subscriptions: dict[type[DomainEvent], list[EventHandlerType]] = defaultdict(list)
        self._running = False
        self._started_at: datetime | None = None
        self._published = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            raise EventBusError("Event bus is already running")
        self._running = True
        self._started_at = datetime.now(UTC)
        self._published = 0
        logger.info("Event bus started", event_types=len(self._subscriptions))

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        uptime = (datetime.now(UTC) - self._started_at).total_seconds() if self._started_at else 0.0
        logger.info("Event bus stopped", uptime_seconds=uptime, events_published=self._published)

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandlerType) -> None:
        """
        Register ``handler`` for ``event_type`` and its subclasses.

        Raises:
            ValidationError: If the target is not an event class or the
                handler does not take exactly one argument
        """
        if not isinstance(event_type, type) or not issubclass(event_type, DomainEvent):
            raise ValidationError(f"Cannot subscribe to {event_type!r}: not a DomainEvent class")
        if not callable(handler):
            raise ValidationError(f"Handler must be callable, got {type(handler).__name__}")
        try:
            arity = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Cannot inspect handler signature: {e}") from e
        if arity != 1:
            raise ValidationError(f"Handler must take one argument (the event), takes {arity}")

        self._subscriptions[event_type].append(handler)
        logger.debug(
            "Handler subscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandlerType) -> None:
        handlers = self._subscriptions.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(
                "Handler unsubscribed",
                event_type=event_type.__name__,
                handler=_handler_name(handler),
            )

    def _handlers_for(self, event: DomainEvent) -> list[EventHandlerType]:
        handlers: list[EventHandlerType] = []
        for cls in type(event).__mro__:
            if cls is DomainEvent:
                break
            handlers.extend(self._subscriptions.get(cls, ()))
        return handlers

    async def publish(self, event: DomainEvent, correlation_id: str | None = None) -> None:
        if not self._running:
            raise EventBusError("Event bus is not running; call start() first")
        if not isinstance(event, DomainEvent):
            raise ValidationError(f"Expected a DomainEvent, got {type(event).__name__}")

        if correlation_id:
            event.metadata.correlation_id = correlation_id
        self._published += 1

        log = logger.bind(event_type=event.event_type, event_id=str(event.event_id))
        handlers = self._handlers_for(event)
        if not handlers:
            log.debug("Event has no subscribers")
            return
        log.debug(
            "Publishing event",
            aggregate_id=event.metadata.aggregate_id,
            handler_count=len(handlers),
        )

        failures: list[tuple[EventHandlerType, BaseException]] = []
        pending: list[EventHandlerType] = []
        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                pending.append(handler)
                continue
            try:
                handler(event)
            except Exception as e:
                failures.append((handler, e))

        if pending:
            results = await asyncio.gather(*(h(event) for h in pending), return_exceptions=True)
            failures.extend(
                (h, r) for h, r in zip(pending, results, strict=True) if isinstance(r, Exception)
            )

        if not failures:
            return
        for handler, error in failures:
            log.error(
                "Event handler failed",
                handler=_handler_name(handler),
                error=str(error),
                error_type=type(error).__name__,
            )
        first = failures[0][1]
        raise EventProcessingError(
            f"{len(failures)} handler(s) failed for {event.event_type}: {first}",
            details={"event_type": event.event_type, "failures": len(failures)},
        ) from first

    def get_statistics(self) -> dict[str, Any]:
        registered = [h for handlers in self._subscriptions.values() for h in handlers]
        is_async = [inspect.iscoroutinefunction(h) for h in registered]
        return {
            "bus_type": "in_memory",
            "running": self._running,
            "start_time": self._started_at.isoformat() if self._started_at else None,
            "events_processed": self._published,
            "handler_registrations": {
                "sync": is_async.count(False),
                "async": is_async.count(True),
            },
        }


__all__ = [
    "EventBus",
    "EventBusError",
    "EventHandlerType",
    "EventProcessingError",
    "InMemoryEventBus",
]
