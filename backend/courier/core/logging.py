# ruff: noqa: A005
"""Structured logging for Courier.

``configure_logging`` installs a structlog processor chain on top of the
stdlib ``logging`` module, once per process. Modules obtain loggers with
``get_logger(__name__)`` and log key/value context::

    logger = get_logger(__name__)
    logger.info("Notification dispatched", notification_id=str(n.id), topic=topic)

Context bound with ``log_context`` (for example a correlation id) is merged
into every record until ``clear_context`` runs.
"""

import logging
import re
import sys
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

from courier.core.enums import Environment, LogFormat, LogLevel
from courier.core.errors import ConfigurationError

MIN_MESSAGE_LENGTH = 1000

# Chatty third-party loggers quietened in production.
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


@dataclass
class LogConfig:
    """
    Logging options, usually built by ``Settings.log_config()``.

    Production always masks sensitive fields and never logs at DEBUG.
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    environment: Environment = Environment.DEVELOPMENT
    enable_timestamps: bool = True
    enable_exception_info: bool = True
    enable_sensitive_data_filtering: bool = True
    max_message_length: int = 10000

    def __post_init__(self):
        if self.max_message_length < MIN_MESSAGE_LENGTH:
            raise ConfigurationError(
                f"max_message_length must be at least {MIN_MESSAGE_LENGTH}",
                config_key="max_message_length",
            )
        if self.environment.is_production:
            self.enable_sensitive_data_filtering = True
            if self.level is LogLevel.DEBUG:
                self.level = LogLevel.INFO


class SensitiveDataFilter:
    """Processor masking values whose key looks like a credential, at any depth."""

    KEY_PATTERN = re.compile(
        r"password|token|secret|api.?key|credential|authorization", re.IGNORECASE
    )

    def __init__(self, mask: str = "***[MASKED]"):
        self.mask = mask

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        return self.filter(event_dict)

    def filter(self, record: dict[str, Any]) -> dict[str, Any]:
        masked: dict[str, Any] = {}
        for key, value in record.items():
            if key != "event" and self.KEY_PATTERN.search(key):
                masked[key] = None if value is None else self.mask
            elif isinstance(value, dict):
                masked[key] = self.filter(value)
            else:
                masked[key] = value
        return masked


class MessageLengthFilter:
    """Processor cutting the event message down to ``max_length`` characters."""

    def __init__(self, max_length: int = 10000, suffix: str = "... [TRUNCATED]"):
        self.max_length = max_length
        self.suffix = suffix

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        message = event_dict.get("event")
        if isinstance(message, str) and len(message) > self.max_length:
            event_dict["event"] = message[: self.max_length - len(self.suffix)] + self.suffix
            event_dict["original_message_length"] = len(message)
        return event_dict


def _renderer(log_format: LogFormat) -> Any:
    if log_format is LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    if log_format is LogFormat.CONSOLE:
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.KeyValueRenderer()


def build_processors(config: LogConfig) -> list[Any]:
    """Processor chain for ``config``; the renderer is always last."""
    chain: list[Any] = [
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if config.enable_timestamps:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if config.enable_sensitive_data_filtering:
        chain.append(SensitiveDataFilter())
    chain.append(MessageLengthFilter(config.max_message_length))
    if config.enable_exception_info:
        chain += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]
    chain.append(structlog.processors.UnicodeDecoder())
    chain.append(_renderer(config.format))
    return chain


_configured = False


def configure_logging(config: LogConfig | None = None) -> None:
    """Install the processor chain; defaults apply when ``config`` is omitted."""
    global _configured  # noqa: PLW0603

    config = config or LogConfig()
    structlog.configure(
        processors=build_processors(config),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=config.level.to_logging_level())

    if config.environment.is_production:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    if not _configured:
        configure_logging()
    return structlog.stdlib.get_logger(name)


def log_context(**kwargs: Any) -> None:
    """Bind ``kwargs`` to every record logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
