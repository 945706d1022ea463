"""
Courier configuration.

Settings are read from ``COURIER_``-prefixed environment variables, optionally
seeded from a ``.env`` file. Values already present in the process environment
win over the file.

Usage Example:
    settings = get_settings()
    configure_logging(settings.log_config())
"""

import os
from enum import Enum
from functools import lru_cache
from typing import Any

from courier.core.enums import Environment, LogFormat, LogLevel
from courier.core.errors import ConfigurationError
from courier.core.logging import LogConfig

ENV_PREFIX = "COURIER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class EnvironmentLoader:
    """
    Environment variable loader with type conversion and validation.

    Every getter raises ``ConfigurationError`` naming the offending key when a
    required value is missing or a value cannot be converted.
    """

    def __init__(self, env_file: str | None = ".env", prefix: str = ENV_PREFIX):
        """
        Initialize environment loader.

        Args:
            env_file: Optional environment file to load
            prefix: Prefix prepended to every key
        """
        self.env_file = env_file
        self.prefix = prefix
        self._load_env_file()

    def _load_env_file(self) -> None:
        """Load environment variables from file if it exists."""
        if not self.env_file or not os.path.exists(self.env_file):
            return

        try:
            with open(self.env_file, encoding="utf-8") as f:
                for raw_line in f:
                    line = raw_line.strip()

                    if not line or line.startswith("#") or "=" not in line:
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()

                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key not in os.environ:
                        os.environ[key] = value

        except OSError as e:
            raise ConfigurationError(
                f"Failed to load environment file {self.env_file}: {e}"
            ) from e

    def _raw(self, key: str) -> str | None:
        value = os.environ.get(f"{self.prefix}{key}")
        if value is None or not value.strip():
            return None
        return value.strip()

    def _missing(self, key: str) -> ConfigurationError:
        return ConfigurationError(
            f"Required setting {self.prefix}{key} is not set",
            config_key=f"{self.prefix}{key}",
        )

    def get_string(
        self, key: str, default: str | None = None, required: bool = False
    ) -> str | None:
        """Get string value from environment."""
        value = self._raw(key)
        if value is None:
            if required and default is None:
                raise self._missing(key)
            return default
        return value

    def get_integer(
        self,
        key: str,
        default: int | None = None,
        required: bool = False,
        min_value: int | None = None,
    ) -> int | None:
        """Get integer value from environment."""
        value = self._raw(key)
        if value is None:
            if required and default is None:
                raise self._missing(key)
            return default

        try:
            result = int(value)
        except ValueError as e:
            raise ConfigurationError(
                f"{self.prefix}{key} must be an integer, got {value!r}",
                config_key=f"{self.prefix}{key}",
            ) from e

        if min_value is not None and result < min_value:
            raise ConfigurationError(
                f"{self.prefix}{key} must be at least {min_value}, got {result}",
                config_key=f"{self.prefix}{key}",
            )
        return result

    def get_boolean(self, key: str, default: bool = False) -> bool:
        """Get boolean value from environment."""
        value = self._raw(key)
        if value is None:
            return default

        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(
            f"{self.prefix}{key} must be a boolean, got {value!r}",
            config_key=f"{self.prefix}{key}",
        )

    def get_enum(self, key: str, enum_class: type[Enum], default: Enum) -> Any:
        """Get enum value from environment, matching member value or name."""
        value = self._raw(key)
        if value is None:
            return default

        for member in enum_class:
            member_value = member.value
            if isinstance(member_value, tuple):
                member_value = member_value[0]
            if value.lower() in (str(member_value).lower(), member.name.lower()):
                return member

        allowed = ", ".join(member.name for member in enum_class)
        raise ConfigurationError(
            f"{self.prefix}{key} must be one of: {allowed}, got {value!r}",
            config_key=f"{self.prefix}{key}",
        )


class Settings:
    """
    Courier settings.

    Usage Example:
        settings = Settings(env_file=None)
        settings.topic_priority  # "notification-priority"
    """

    def __init__(self, env_file: str | None = ".env"):
        """
        Initialize settings with environment variable loading.

        Args:
            env_file: Environment file to load variables from
        """
        self.env_loader = EnvironmentLoader(env_file)

        self._load_application_config()
        self._load_database_config()
        self._load_routing_config()
        self._load_retry_config()

        self._validate_configuration()

    def _load_application_config(self) -> None:
        self.environment = self.env_loader.get_enum(
            "ENVIRONMENT", Environment, Environment.DEVELOPMENT
        )
        self.log_level = self.env_loader.get_enum("LOG_LEVEL", LogLevel, LogLevel.INFO)
        self.log_format = self.env_loader.get_enum(
            "LOG_FORMAT", LogFormat, LogFormat.JSON
        )

    def _load_database_config(self) -> None:
        self.database_url = self.env_loader.get_string(
            "DATABASE_URL", "sqlite+aiosqlite:///./courier.db"
        )
        self.database_echo = self.env_loader.get_boolean("DATABASE_ECHO", False)

    def _load_routing_config(self) -> None:
        self.topic_created = self.env_loader.get_string(
            "TOPIC_CREATED", "notification-created"
        )
        self.topic_priority = self.env_loader.get_string(
            "TOPIC_PRIORITY", "notification-priority"
        )
        self.topic_scheduled = self.env_loader.get_string(
            "TOPIC_SCHEDULED", "notification-scheduled"
        )

    def _load_retry_config(self) -> None:
        self.retry_batch_size = self.env_loader.get_integer(
            "RETRY_BATCH_SIZE", 100, min_value=1
        )
        self.default_max_retries = self.env_loader.get_integer(
            "DEFAULT_MAX_RETRIES", 3, min_value=1
        )

    def _validate_configuration(self) -> None:
        topics = [self.topic_created, self.topic_priority, self.topic_scheduled]
        if len(set(topics)) != len(topics):
            raise ConfigurationError(
                "Routing topics must be distinct", config_key=f"{ENV_PREFIX}TOPIC_*"
            )

        if self.environment.is_production and self.database_url.startswith("sqlite"):
            raise ConfigurationError(
                "SQLite is not supported in production",
                config_key=f"{ENV_PREFIX}DATABASE_URL",
            )

    def log_config(self) -> LogConfig:
        """Build the logging configuration for these settings."""
        return LogConfig(
            level=self.log_level,
            format=self.log_format,
            environment=self.environment,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment.value,
            "log_level": self.log_level.level_name,
            "log_format": self.log_format.value,
            "database_echo": self.database_echo,
            "topic_created": self.topic_created,
            "topic_priority": self.topic_priority,
            "topic_scheduled": self.topic_scheduled,
            "retry_batch_size": self.retry_batch_size,
            "default_max_retries": self.default_max_retries,
        }


@lru_cache
def get_settings(env_file: str | None = ".env") -> Settings:
    """
    Get cached settings instance.

    Args:
        env_file: Environment file to load
    """
    return Settings(env_file)


__all__ = ["ENV_PREFIX", "EnvironmentLoader", "Settings", "get_settings"]
