"""Tests for notification domain enums.

Covers channel policy tables and backoff, priority ordering, the status
transition table, notification type classification and recurrence steps.
"""

from datetime import UTC, datetime

import pytest

from courier.core.errors import ValidationError
from courier.modules.notification.domain.enums import (
    MAX_CHANNEL_RETRY_DELAY_MS,
    DeliveryChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    RecurrencePattern,
)
from courier.modules.notification.domain.errors import InvalidConfigurationError


class TestDeliveryChannel:
    """Test suite for DeliveryChannel enum."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("EMAIL", DeliveryChannel.EMAIL),
            ("email", DeliveryChannel.EMAIL),
            (" Push ", DeliveryChannel.PUSH),
            ("in_app", DeliveryChannel.IN_APP),
        ],
    )
    def test_from_string_is_case_insensitive(self, raw, expected):
        """Test channel lookup ignores case and surrounding whitespace."""
        assert DeliveryChannel.from_string(raw) is expected

    def test_from_string_rejects_unknown_channel(self):
        """Test unknown names raise with the allowed values attached."""
        with pytest.raises(InvalidConfigurationError) as exc_info:
            DeliveryChannel.from_string("FAX")

        assert "FAX" in str(exc_info.value)
        assert "EMAIL" in exc_info.value.details["allowed"]

    def test_policy_tables(self):
        """Test per-channel retry, delay, timeout and rate limit values."""
        expected = {
            DeliveryChannel.EMAIL: (3, 30_000, 30_000, 10_000),
            DeliveryChannel.SMS: (2, 60_000, 15_000, 1_000),
            DeliveryChannel.PUSH: (3, 15_000, 10_000, 50_000),
            DeliveryChannel.WEBHOOK: (5, 45_000, 30_000, 5_000),
            DeliveryChannel.IN_APP: (1, 10_000, 5_000, 100_000),
        }

        for channel, (retries, delay, timeout, rate_limit) in expected.items():
            assert channel.max_retries == retries
            assert channel.base_retry_delay == delay
            assert channel.timeout == timeout
            assert channel.default_rate_limit == rate_limit

    def test_retry_delay_doubles_per_attempt(self):
        """Test exponential backoff from the base delay."""
        assert DeliveryChannel.EMAIL.get_retry_delay(0) == 30_000
        assert DeliveryChannel.EMAIL.get_retry_delay(1) == 60_000
        assert DeliveryChannel.EMAIL.get_retry_delay(2) == 120_000
        assert DeliveryChannel.EMAIL.get_retry_delay(3) == 240_000

    def test_retry_delay_is_capped(self):
        """Test backoff never exceeds five minutes."""
        assert DeliveryChannel.EMAIL.get_retry_delay(4) == MAX_CHANNEL_RETRY_DELAY_MS
        assert DeliveryChannel.SMS.get_retry_delay(30) == MAX_CHANNEL_RETRY_DELAY_MS

    def test_retry_delay_rejects_negative_attempt(self):
        """Test a negative attempt number is a validation error."""
        with pytest.raises(ValidationError):
            DeliveryChannel.PUSH.get_retry_delay(-1)

    def test_channel_classification(self):
        """Test real-time, external and consent flags."""
        assert DeliveryChannel.PUSH.is_real_time() is True
        assert DeliveryChannel.IN_APP.is_real_time() is True
        assert DeliveryChannel.EMAIL.is_real_time() is False

        assert DeliveryChannel.WEBHOOK.is_external() is True
        assert DeliveryChannel.IN_APP.is_external() is False

        assert DeliveryChannel.WEBHOOK.requires_user_consent is False
        assert DeliveryChannel.SMS.requires_user_consent is True

    def test_all_channels(self):
        """Test all_channels lists every member."""
        assert len(DeliveryChannel.all_channels()) == 5


class TestNotificationPriority:
    """Test suite for NotificationPriority enum."""

    def test_levels_are_ordered(self):
        """Test LOW through CRITICAL map to levels one through five."""
        levels = [priority.level for priority in NotificationPriority]
        assert levels == [1, 2, 3, 4, 5]

    def test_is_high_from_level_three(self):
        """Test HIGH, URGENT and CRITICAL count as high priority."""
        high = {p for p in NotificationPriority if p.is_high()}
        assert high == {
            NotificationPriority.HIGH,
            NotificationPriority.URGENT,
            NotificationPriority.CRITICAL,
        }

    def test_processing_order_puts_critical_first(self):
        """Test the min-heap key decreases with priority."""
        assert NotificationPriority.CRITICAL.processing_order == 5
        assert NotificationPriority.LOW.processing_order == 9
        assert sorted(NotificationPriority, key=lambda p: p.processing_order)[0] is (
            NotificationPriority.CRITICAL
        )

    @pytest.mark.parametrize(
        ("priority", "delay"),
        [
            (NotificationPriority.LOW, 60_000),
            (NotificationPriority.NORMAL, 30_000),
            (NotificationPriority.HIGH, 20_000),
            (NotificationPriority.URGENT, 15_000),
            (NotificationPriority.CRITICAL, 12_000),
        ],
    )
    def test_retry_delay(self, priority, delay):
        """Test priority-based retry delay."""
        assert priority.retry_delay == delay

    def test_comparisons(self):
        """Test relative priority helpers."""
        assert NotificationPriority.URGENT.is_higher_than(NotificationPriority.HIGH)
        assert NotificationPriority.LOW.is_lower_than(NotificationPriority.NORMAL)
        assert NotificationPriority.CRITICAL.is_critical()
        assert not NotificationPriority.URGENT.is_critical()

    def test_from_level(self):
        """Test reverse lookup by numeric level."""
        assert NotificationPriority.from_level(3) is NotificationPriority.HIGH

        with pytest.raises(InvalidConfigurationError):
            NotificationPriority.from_level(9)


class TestNotificationStatus:
    """Test suite for the status transition table."""

    @pytest.mark.parametrize(
        ("source", "targets"),
        [
            (
                NotificationStatus.PENDING,
                {"SCHEDULED", "PROCESSING", "CANCELLED"},
            ),
            (
                NotificationStatus.SCHEDULED,
                {"PROCESSING", "CANCELLED", "EXPIRED"},
            ),
            (NotificationStatus.PROCESSING, {"SENT", "FAILED", "RETRY"}),
            (NotificationStatus.RETRY, {"PROCESSING", "FAILED", "EXPIRED"}),
            (NotificationStatus.FAILED, {"RETRY"}),
            (NotificationStatus.SENT, set()),
            (NotificationStatus.EXPIRED, set()),
            (NotificationStatus.CANCELLED, set()),
        ],
    )
    def test_allowed_transitions(self, source, targets):
        """Test each status allows exactly the listed targets."""
        allowed = {status.value for status in NotificationStatus if source.can_transition_to(status)}
        assert allowed == targets

    def test_terminal_statuses(self):
        """Test terminal statuses are the ones with no outgoing edges."""
        terminal = {s for s in NotificationStatus if s.is_terminal()}
        assert terminal == {
            NotificationStatus.SENT,
            NotificationStatus.EXPIRED,
            NotificationStatus.CANCELLED,
        }

    def test_processable_statuses(self):
        """Test which statuses may move to PROCESSING."""
        processable = {s for s in NotificationStatus if s.is_processable()}
        assert processable == {
            NotificationStatus.PENDING,
            NotificationStatus.SCHEDULED,
            NotificationStatus.RETRY,
        }

    def test_from_string(self):
        """Test status lookup by name."""
        assert NotificationStatus.from_string("retry") is NotificationStatus.RETRY

        with pytest.raises(InvalidConfigurationError):
            NotificationStatus.from_string("DELIVERED")


class TestNotificationType:
    """Test suite for NotificationType classification."""

    def test_transactional_types(self):
        """Test account and post lifecycle types are transactional."""
        assert NotificationType.PASSWORD_RESET.is_transactional()
        assert NotificationType.SECURITY_ALERT.is_transactional()
        assert not NotificationType.PROMOTIONAL.is_transactional()

    def test_promotional_types(self):
        """Test marketing and maintenance types are promotional."""
        assert NotificationType.PROMOTIONAL.is_promotional()
        assert NotificationType.SYSTEM_MAINTENANCE.is_promotional()

    def test_post_expired_is_unclassified(self):
        """Test POST_EXPIRED is neither transactional nor promotional."""
        assert not NotificationType.POST_EXPIRED.is_transactional()
        assert not NotificationType.POST_EXPIRED.is_promotional()


class TestRecurrencePattern:
    """Test suite for calendar-aware recurrence."""

    def test_daily_and_weekly(self):
        """Test fixed-length steps."""
        start = datetime(2024, 3, 9, 8, 30, tzinfo=UTC)

        assert RecurrencePattern.DAILY.get_next_execution(start) == datetime(
            2024, 3, 10, 8, 30, tzinfo=UTC
        )
        assert RecurrencePattern.WEEKLY.get_next_execution(start) == datetime(
            2024, 3, 16, 8, 30, tzinfo=UTC
        )

    def test_monthly_clamps_to_month_end(self):
        """Test January 31st rolls to the last day of February."""
        start = datetime(2024, 1, 31, 9, 0, tzinfo=UTC)

        assert RecurrencePattern.MONTHLY.get_next_execution(start) == datetime(
            2024, 2, 29, 9, 0, tzinfo=UTC
        )

    def test_yearly_from_leap_day(self):
        """Test a leap day rolls to February 28th."""
        start = datetime(2024, 2, 29, tzinfo=UTC)

        assert RecurrencePattern.YEARLY.get_next_execution(start) == datetime(
            2025, 2, 28, tzinfo=UTC
        )
