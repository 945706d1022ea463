"""Tests for environment-driven settings."""

import pytest

from courier.core.config import EnvironmentLoader, Settings
from courier.core.enums import Environment, LogFormat, LogLevel
from courier.core.errors import ConfigurationError

SETTING_KEYS = (
    "ENVIRONMENT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "TOPIC_CREATED",
    "TOPIC_PRIORITY",
    "TOPIC_SCHEDULED",
    "RETRY_BATCH_SIZE",
    "DEFAULT_MAX_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without COURIER_ variables and restore afterwards."""
    for key in SETTING_KEYS:
        # setenv first so values loaded from .env files are removed on undo
        monkeypatch.setenv(f"COURIER_{key}", "")
        monkeypatch.delenv(f"COURIER_{key}")


class TestEnvironmentLoader:
    """Test suite for EnvironmentLoader conversions."""

    @pytest.fixture
    def loader(self):
        return EnvironmentLoader(env_file=None)

    def test_string_default_and_required(self, loader):
        """Test missing strings fall back or raise."""
        assert loader.get_string("TOPIC_CREATED", "fallback") == "fallback"

        with pytest.raises(ConfigurationError) as exc_info:
            loader.get_string("TOPIC_CREATED", required=True)
        assert exc_info.value.details["config_key"] == "COURIER_TOPIC_CREATED"

    def test_blank_value_counts_as_missing(self, loader, monkeypatch):
        """Test whitespace-only values are ignored."""
        monkeypatch.setenv("COURIER_TOPIC_CREATED", "   ")

        assert loader.get_string("TOPIC_CREATED", "fallback") == "fallback"

    def test_integer(self, loader, monkeypatch):
        """Test integer parsing and lower bound."""
        monkeypatch.setenv("COURIER_RETRY_BATCH_SIZE", "50")
        assert loader.get_integer("RETRY_BATCH_SIZE", 100, min_value=1) == 50

        monkeypatch.setenv("COURIER_RETRY_BATCH_SIZE", "0")
        with pytest.raises(ConfigurationError):
            loader.get_integer("RETRY_BATCH_SIZE", 100, min_value=1)

        monkeypatch.setenv("COURIER_RETRY_BATCH_SIZE", "many")
        with pytest.raises(ConfigurationError):
            loader.get_integer("RETRY_BATCH_SIZE", 100)

    @pytest.mark.parametrize(
        ("raw", "expected"), [("true", True), ("YES", True), ("0", False), ("off", False)]
    )
    def test_boolean(self, loader, monkeypatch, raw, expected):
        """Test accepted boolean spellings."""
        monkeypatch.setenv("COURIER_DATABASE_ECHO", raw)

        assert loader.get_boolean("DATABASE_ECHO") is expected

    def test_boolean_rejects_garbage(self, loader, monkeypatch):
        """Test unrecognised boolean text raises."""
        monkeypatch.setenv("COURIER_DATABASE_ECHO", "maybe")

        with pytest.raises(ConfigurationError):
            loader.get_boolean("DATABASE_ECHO")

    def test_enum_by_value_or_name(self, loader, monkeypatch):
        """Test enums match member values, tuple value heads and names."""
        monkeypatch.setenv("COURIER_ENVIRONMENT", "prod")
        assert loader.get_enum("ENVIRONMENT", Environment, Environment.DEVELOPMENT) is (
            Environment.PRODUCTION
        )

        monkeypatch.setenv("COURIER_ENVIRONMENT", "staging")
        assert loader.get_enum("ENVIRONMENT", Environment, Environment.DEVELOPMENT) is (
            Environment.STAGING
        )

        monkeypatch.setenv("COURIER_LOG_LEVEL", "debug")
        assert loader.get_enum("LOG_LEVEL", LogLevel, LogLevel.INFO) is LogLevel.DEBUG

        monkeypatch.setenv("COURIER_LOG_LEVEL", "verbose")
        with pytest.raises(ConfigurationError):
            loader.get_enum("LOG_LEVEL", LogLevel, LogLevel.INFO)

    def test_env_file_does_not_override_process_env(self, tmp_path, monkeypatch):
        """Test values already in the environment win over the file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            'COURIER_TOPIC_CREATED="from-file"\n'
            "COURIER_TOPIC_PRIORITY=from-file\n"
            "not a setting\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("COURIER_TOPIC_PRIORITY", "from-env")

        loader = EnvironmentLoader(env_file=str(env_file))

        assert loader.get_string("TOPIC_CREATED") == "from-file"
        assert loader.get_string("TOPIC_PRIORITY") == "from-env"


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self):
        """Test settings without any environment."""
        settings = Settings(env_file=None)

        assert settings.environment is Environment.DEVELOPMENT
        assert settings.log_level is LogLevel.INFO
        assert settings.log_format is LogFormat.JSON
        assert settings.database_url == "sqlite+aiosqlite:///./courier.db"
        assert settings.database_echo is False
        assert settings.topic_created == "notification-created"
        assert settings.topic_priority == "notification-priority"
        assert settings.topic_scheduled == "notification-scheduled"
        assert settings.retry_batch_size == 100
        assert settings.default_max_retries == 3

    def test_overrides(self, monkeypatch):
        """Test every setting can be overridden."""
        monkeypatch.setenv("COURIER_ENVIRONMENT", "staging")
        monkeypatch.setenv("COURIER_LOG_FORMAT", "console")
        monkeypatch.setenv("COURIER_TOPIC_PRIORITY", "urgent-notifications")
        monkeypatch.setenv("COURIER_DEFAULT_MAX_RETRIES", "5")

        settings = Settings(env_file=None)

        assert settings.environment is Environment.STAGING
        assert settings.log_format is LogFormat.CONSOLE
        assert settings.topic_priority == "urgent-notifications"
        assert settings.default_max_retries == 5

    def test_topics_must_be_distinct(self, monkeypatch):
        """Test two routes cannot share a topic."""
        monkeypatch.setenv("COURIER_TOPIC_SCHEDULED", "notification-created")

        with pytest.raises(ConfigurationError):
            Settings(env_file=None)

    def test_sqlite_rejected_in_production(self, monkeypatch):
        """Test production requires a server database."""
        monkeypatch.setenv("COURIER_ENVIRONMENT", "prod")

        with pytest.raises(ConfigurationError):
            Settings(env_file=None)

        monkeypatch.setenv("COURIER_DATABASE_URL", "postgresql+asyncpg://db/courier")
        assert Settings(env_file=None).environment.is_production

    def test_log_config_follows_settings(self, monkeypatch):
        """Test the derived logging configuration."""
        monkeypatch.setenv("COURIER_LOG_LEVEL", "DEBUG")

        log_config = Settings(env_file=None).log_config()

        assert log_config.level is LogLevel.DEBUG
        assert log_config.environment is Environment.DEVELOPMENT

    def test_to_dict_hides_database_url(self):
        """Test the serialised view leaves out connection strings."""
        data = Settings(env_file=None).to_dict()

        assert "database_url" not in data
        assert data["log_level"] == "INFO"
        assert data["environment"] == "dev"
