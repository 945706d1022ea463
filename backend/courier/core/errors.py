"""Error hierarchy shared by every Courier layer.

Errors carry a stable code, an HTTP-ish status, a severity used for alerting
and a ``retryable`` hint. The surrounding system translates them into
transport-level responses; nothing in this module performs I/O.

Usage Example:
    try:
        await repository.save(notification)
    except CourierError as e:
        logger.error("Save failed", **e.to_dict(include_internal=True))
        raise
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and alerting."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CourierError(Exception):
    """
    Base exception for all Courier errors.

    Keyword arguments:
        code: Overrides the class ``default_code``
        details: Structured, JSON-compatible facts about the failure
        correlation_id: Request or message id the failure belongs to
        cause: Underlying exception, exposed as ``__cause__``
    """

    default_code: str = "ERROR"
    status_code: int = 500
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.code = kwargs.get("code") or self.default_code
        self.details: dict[str, Any] = dict(kwargs.get("details") or {})
        self.correlation_id: str | None = kwargs.get("correlation_id")
        self.error_id = str(uuid.uuid4())
        self.occurred_at = datetime.now(UTC)
        if kwargs.get("cause") is not None:
            self.__cause__ = kwargs["cause"]

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_dict(self, include_internal: bool = False) -> dict[str, Any]:
        """
        Serialize the error for responses or structured logs.

        Details whose keys start with an underscore are private and never
        serialized. ``include_internal`` adds ids, severity and the cause.
        """
        data: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }

        public_details = {k: v for k, v in self.details.items() if not k.startswith("_")}
        if public_details:
            data["details"] = public_details

        if self.retryable:
            data["retryable"] = True

        if include_internal:
            data["error_id"] = self.error_id
            data["correlation_id"] = self.correlation_id
            data["severity"] = self.severity.value
            data["occurred_at"] = self.occurred_at.isoformat()
            if self.__cause__ is not None:
                data["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"

        return data

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.code}: {self.message}"


class DomainError(CourierError):
    """Business rule violated inside an aggregate or value object."""

    default_code = "DOMAIN_ERROR"
    status_code = 400


class ApplicationError(CourierError):
    """Use-case level failure (bad input, missing resource, conflict)."""

    default_code = "APPLICATION_ERROR"
    status_code = 400


class InfrastructureError(CourierError):
    """Failure of a database, transport or other external dependency."""

    default_code = "INFRASTRUCTURE_ERROR"
    severity = ErrorSeverity.HIGH
    retryable = True


class ValidationError(ApplicationError):
    """Malformed input, optionally pinned to a field."""

    default_code = "VALIDATION_ERROR"
    status_code = 422
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str,
        field: str | None = None,
        field_errors: dict[str, list[str]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        if field:
            self.details["field"] = field
        if field_errors:
            self.details["field_errors"] = field_errors


class NotFoundError(ApplicationError):
    default_code = "NOT_FOUND"
    status_code = 404
    severity = ErrorSeverity.LOW

    def __init__(self, resource: str, identifier: Any, **kwargs: Any) -> None:
        super().__init__(f"{resource} not found: {identifier}", **kwargs)
        self.details.update({"resource": resource, "identifier": str(identifier)})


class ConflictError(ApplicationError):
    """Write rejected because the stored state moved on (e.g. a stale version)."""

    default_code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, resource: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if resource:
            self.details["resource"] = resource


class ConfigurationError(InfrastructureError):
    """Invalid or missing setting; never worth retrying."""

    default_code = "CONFIGURATION_ERROR"
    severity = ErrorSeverity.CRITICAL
    retryable = False

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if config_key:
            self.details["config_key"] = config_key


__all__ = [
    "ApplicationError",
    "ConfigurationError",
    "ConflictError",
    "CourierError",
    "DomainError",
    "ErrorSeverity",
    "InfrastructureError",
    "NotFoundError",
    "ValidationError",
]
