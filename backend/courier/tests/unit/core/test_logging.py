"""Tests for structured logging configuration and processors."""

import pytest
import structlog

from courier.core.enums import Environment, LogFormat, LogLevel
from courier.core.errors import ConfigurationError
from courier.core.logging import (
    LogConfig,
    MessageLengthFilter,
    SensitiveDataFilter,
    build_processors,
    clear_context,
    log_context,
)


class TestLogConfig:
    """Test suite for LogConfig validation and defaults."""

    def test_rejects_short_message_limit(self):
        """Test the message length floor."""
        with pytest.raises(ConfigurationError):
            LogConfig(max_message_length=999)

    def test_production_forces_safe_defaults(self):
        """Test production disables debug logging and keeps masking on."""
        config = LogConfig(
            level=LogLevel.DEBUG,
            environment=Environment.PRODUCTION,
            enable_sensitive_data_filtering=False,
        )

        assert config.level is LogLevel.INFO
        assert config.enable_sensitive_data_filtering is True

    def test_development_keeps_debug(self):
        """Test non-production environments keep the requested level."""
        assert LogConfig(level=LogLevel.DEBUG).level is LogLevel.DEBUG


class TestSensitiveDataFilter:
    """Test suite for SensitiveDataFilter."""

    def test_masks_sensitive_keys(self):
        """Test credentials are masked, other fields pass through."""
        result = SensitiveDataFilter()(
            None,
            "info",
            {
                "event": "Provider call",
                "api_key": "sk-123",
                "auth_token": "abc",
                "recipient_id": "user-42",
                "password": None,
            },
        )

        assert result == {
            "event": "Provider call",
            "api_key": "***[MASKED]",
            "auth_token": "***[MASKED]",
            "recipient_id": "user-42",
            "password": None,
        }

    def test_masks_nested_dicts(self):
        """Test nested payloads are walked."""
        result = SensitiveDataFilter().filter(
            {"provider": {"name": "fcm", "client_secret": "s3cr3t"}}
        )

        assert result == {"provider": {"name": "fcm", "client_secret": "***[MASKED]"}}


class TestMessageLengthFilter:
    """Test suite for MessageLengthFilter."""

    def test_truncates_long_messages(self):
        """Test long events are cut to the limit with a suffix."""
        result = MessageLengthFilter(max_length=50)(None, "info", {"event": "x" * 80})

        assert len(result["event"]) == 50
        assert result["event"].endswith("... [TRUNCATED]")
        assert result["original_message_length"] == 80

    def test_short_messages_untouched(self):
        """Test messages within the limit are left alone."""
        event_dict = {"event": "short"}

        assert MessageLengthFilter(max_length=50)(None, "info", event_dict) == {"event": "short"}


class TestProcessorChain:
    """Test suite for build_processors."""

    @pytest.mark.parametrize(
        ("log_format", "renderer"),
        [
            (LogFormat.JSON, structlog.processors.JSONRenderer),
            (LogFormat.CONSOLE, structlog.dev.ConsoleRenderer),
            (LogFormat.PLAIN, structlog.processors.KeyValueRenderer),
        ],
    )
    def test_renderer_matches_format(self, log_format, renderer):
        """Test the final processor renders the configured format."""
        processors = build_processors(LogConfig(format=log_format))

        assert isinstance(processors[-1], renderer)

    def test_masking_can_be_disabled(self):
        """Test the sensitive data filter is optional outside production."""
        processors = build_processors(LogConfig(enable_sensitive_data_filtering=False))

        assert not any(isinstance(p, SensitiveDataFilter) for p in processors)


class TestLogContext:
    """Test suite for context binding helpers."""

    def test_bind_and_clear(self):
        """Test bound context is visible until cleared."""
        clear_context()
        log_context(correlation_id="req-1")
        assert structlog.contextvars.get_contextvars() == {"correlation_id": "req-1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
