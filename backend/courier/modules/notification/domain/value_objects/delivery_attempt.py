"""Delivery attempt value object.

A ``DeliveryAttempt`` is the immutable record of one try on one channel.
Its failure category and retryability are derived from the response code
and error text, never stored.
"""

import re
from datetime import datetime
from typing import Any

from courier.core.clock import ensure_utc
from courier.core.domain.base import ValueObject
from courier.core.errors import ValidationError
from courier.modules.notification.domain.enums import DeliveryChannel, ErrorCategory

NON_RETRYABLE_RESPONSE_CODES = frozenset({400, 401, 403, 404, 422})

PERMANENT_FAILURE_PATTERNS = (
    re.compile(r"invalid.*email", re.IGNORECASE),
    re.compile(r"invalid.*phone", re.IGNORECASE),
    re.compile(r"unsubscribed", re.IGNORECASE),
    re.compile(r"blocked", re.IGNORECASE),
    re.compile(r"spam", re.IGNORECASE),
    re.compile(r"bounced", re.IGNORECASE),
)

# First match wins
_CATEGORY_MARKERS: tuple[tuple[ErrorCategory, tuple[str, ...]], ...] = (
    (ErrorCategory.TIMEOUT, ("timeout", "timed out")),
    (ErrorCategory.RATE_LIMIT, ("rate limit", "throttled")),
    (ErrorCategory.VALIDATION, ("invalid", "malformed")),
    (ErrorCategory.AUTHENTICATION, ("auth", "unauthorized", "forbidden")),
    (ErrorCategory.NETWORK, ("network", "connection")),
    (ErrorCategory.SERVICE_UNAVAILABLE, ("service unavailable", "server error")),
)


class DeliveryAttempt(ValueObject):
    """Outcome of one delivery try."""

    def __init__(
        self,
        channel: DeliveryChannel,
        attempted_at: datetime,
        success: bool,
        error: str | None = None,
        external_id: str | None = None,
        response_code: int | None = None,
        response_time: int | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        """
        Initialize delivery attempt.

        Args:
            channel: Channel the attempt used
            attempted_at: When the attempt was made
            success: Whether the provider accepted the message
            error: Provider or transport error text
            external_id: Provider-side message id
            response_code: Provider response status code
            response_time: Provider round trip in milliseconds
            metadata: Opaque provider details

        Raises:
            ValidationError: If any field has the wrong type
        """
        super().__init__()

        if not isinstance(channel, DeliveryChannel):
            raise ValidationError("channel must be a DeliveryChannel", field="channel")
        if not isinstance(attempted_at, datetime):
            raise ValidationError("attempted_at must be a datetime", field="attempted_at")
        if response_time is not None and response_time < 0:
            raise ValidationError(
                "response_time cannot be negative", field="response_time"
            )

        self.channel = channel
        self.attempted_at = ensure_utc(attempted_at)
        self.success = bool(success)
        self.error = error
        self.external_id = external_id
        self.response_code = response_code
        self.response_time = response_time
        self.metadata = dict(metadata or {})

        self._freeze()

    @classmethod
    def create_success(
        cls,
        channel: DeliveryChannel,
        attempted_at: datetime,
        external_id: str | None = None,
        response_time: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "DeliveryAttempt":
        return cls(
            channel=channel,
            attempted_at=attempted_at,
            success=True,
            external_id=external_id,
            response_code=200,
            response_time=response_time,
            metadata=metadata,
        )

    @classmethod
    def create_failure(
        cls,
        channel: DeliveryChannel,
        attempted_at: datetime,
        error: str,
        response_code: int | None = None,
        response_time: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "DeliveryAttempt":
        return cls(
            channel=channel,
            attempted_at=attempted_at,
            success=False,
            error=error,
            response_code=response_code,
            response_time=response_time,
            metadata=metadata,
        )

    def is_failure(self) -> bool:
        return not self.success

    def is_retryable(self) -> bool:
        """
        Whether this failure is worth retrying at all.

        Independent of the owning notification's remaining retry budget.
        """
        if self.success:
            return False

        if self.response_code in NON_RETRYABLE_RESPONSE_CODES:
            return False

        if self.error and any(
            pattern.search(self.error) for pattern in PERMANENT_FAILURE_PATTERNS
        ):
            return False

        return True

    @property
    def error_category(self) -> ErrorCategory:
        if self.success:
            return ErrorCategory.NONE
        if not self.error:
            return ErrorCategory.UNKNOWN

        error = self.error.lower()
        for category, markers in _CATEGORY_MARKERS:
            if any(marker in error for marker in markers):
                return category
        return ErrorCategory.UNKNOWN

    @property
    def duration(self) -> int:
        return self.response_time or 0

    def to_log_entry(self) -> dict[str, Any]:
        entry = self.to_dict()
        entry["error_category"] = self.error_category.value
        entry["retryable"] = self.is_retryable()
        return entry

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "attempted_at": self.attempted_at.isoformat(),
            "success": self.success,
            "error": self.error,
            "external_id": self.external_id,
            "response_code": self.response_code,
            "response_time": self.response_time,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryAttempt":
        """
        Rebuild an attempt from ``to_dict`` output.

        Raises:
            ValidationError: If a required key is missing or malformed
        """
        try:
            attempted_at = data["attempted_at"]
            if isinstance(attempted_at, str):
                attempted_at = datetime.fromisoformat(attempted_at)
            return cls(
                channel=DeliveryChannel.from_string(data["channel"]),
                attempted_at=attempted_at,
                success=data["success"],
                error=data.get("error"),
                external_id=data.get("external_id"),
                response_code=data.get("response_code"),
                response_time=data.get("response_time"),
                metadata=data.get("metadata"),
            )
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid delivery attempt data: {e}") from e

    def __str__(self) -> str:
        outcome = "success" if self.success else f"failure ({self.error or 'unknown'})"
        return f"{self.channel.value} at {self.attempted_at.isoformat()}: {outcome}"
