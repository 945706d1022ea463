"""Command and command handler base classes.

A command is a validated, immutable request to change state. Its handler
performs the change; ``execute_with_tracking`` wraps ``handle`` with timing
and structured logging for callers that want per-handler counters.
"""

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar
from uuid import uuid4

from courier.core.logging import get_logger

logger = get_logger(__name__)

TCommand = TypeVar("TCommand", bound="Command")
TResult = TypeVar("TResult")

# Tracing fields stay writable after the command is frozen.
_MUTABLE_AFTER_FREEZE = frozenset({"correlation_id", "source"})


class Command(ABC):
    """
    Base class for commands.

    Subclasses assign their fields, then call ``self._freeze()``, which runs
    ``_validate_command`` and locks the instance.
    """

    def __init__(self):
        self.command_id = uuid4()
        self.created_at = datetime.now(UTC)
        self.correlation_id: str | None = None
        self.source: str | None = None
        self._frozen = False

    def _validate_command(self) -> None:
        """Hook for subclass validation; raise ``ValidationError`` on bad input."""

    def _freeze(self) -> None:
        self._validate_command()
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False) and name not in _MUTABLE_AFTER_FREEZE:
            raise AttributeError(
                f"{self.__class__.__name__} is frozen; cannot set {name!r}"
            )
        super().__setattr__(name, value)

    def set_metadata(
        self, correlation_id: str | None = None, source: str | None = None
    ) -> None:
        """Attach tracing metadata; ``None`` leaves a field untouched."""
        if correlation_id is not None:
            self.correlation_id = correlation_id
        if source is not None:
            self.source = source

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Command) and self.command_id == other.command_id

    def __hash__(self) -> int:
        return hash(self.command_id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.command_id})"


class CommandHandler(ABC, Generic[TCommand, TResult]):
    """Base class for command handlers."""

    def __init__(self):
        self._execution_count = 0
        self._error_count = 0
        self._total_seconds = 0.0
        self._last_executed: datetime | None = None

    @abstractmethod
    async def handle(self, command: TCommand) -> TResult:
        """Apply the command. Raises ``CourierError`` subclasses on failure."""

    @property
    @abstractmethod
    def command_type(self) -> type[TCommand]:
        """Command class this handler accepts."""

    async def execute_with_tracking(self, command: TCommand) -> TResult:
        log = logger.bind(
            command_type=type(command).__name__,
            command_id=str(command.command_id),
            handler=type(self).__name__,
        )
        started = time.perf_counter()
        try:
            result = await self.handle(command)
        except Exception:
            elapsed = time.perf_counter() - started
            self._error_count += 1
            self._total_seconds += elapsed
            log.exception("Command failed", elapsed_seconds=elapsed)
            raise

        elapsed = time.perf_counter() - started
        self._execution_count += 1
        self._total_seconds += elapsed
        self._last_executed = datetime.now(UTC)
        log.info("Command handled", elapsed_seconds=elapsed)
        return result

    def get_performance_stats(self) -> dict[str, Any]:
        attempts = self._execution_count + self._error_count
        return {
            "handler_class": type(self).__name__,
            "command_type": self.command_type.__name__,
            "execution_count": self._execution_count,
            "error_count": self._error_count,
            "average_seconds": self._total_seconds / attempts if attempts else 0.0,
            "last_executed": self._last_executed.isoformat() if self._last_executed else None,
        }


__all__ = ["Command", "CommandHandler", "TCommand", "TResult"]
