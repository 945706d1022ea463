"""Enumerations used by configuration and logging."""

import logging
from enum import Enum


class Environment(Enum):
    """Deployment environment, selected with ``COURIER_ENVIRONMENT``."""

    DEVELOPMENT = "dev"
    TESTING = "test"
    STAGING = "staging"
    PRODUCTION = "prod"

    @property
    def is_production(self) -> bool:
        return self is Environment.PRODUCTION


class LogLevel(Enum):
    """Log level name paired with the stdlib ``logging`` constant."""

    DEBUG = ("DEBUG", logging.DEBUG)
    INFO = ("INFO", logging.INFO)
    WARNING = ("WARNING", logging.WARNING)
    ERROR = ("ERROR", logging.ERROR)
    CRITICAL = ("CRITICAL", logging.CRITICAL)

    def __init__(self, level_name: str, stdlib_level: int):
        self.level_name = level_name
        self.stdlib_level = stdlib_level

    def to_logging_level(self) -> int:
        return self.stdlib_level


class LogFormat(Enum):
    """Renderer at the end of the structlog processor chain."""

    JSON = "json"
    CONSOLE = "console"
    PLAIN = "plain"
