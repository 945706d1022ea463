"""Tests for DispatchRouter topic selection and payloads."""

from datetime import timedelta

import pytest

from courier.modules.notification.domain.enums import NotificationPriority
from courier.modules.notification.domain.services import DispatchRouter


class TestTopicSelection:
    """Test suite for DispatchRouter.select_topic."""

    def test_default_topic(self, router, notification):
        """Test normal priority, unscheduled goes to the created topic."""
        assert router.select_topic(notification) == "notification-created"

    @pytest.mark.parametrize(
        "priority",
        [NotificationPriority.HIGH, NotificationPriority.URGENT, NotificationPriority.CRITICAL],
    )
    def test_high_priority_topic(self, router, make_notification, priority):
        """Test high priorities go to the priority topic."""
        assert router.select_topic(make_notification(priority=priority)) == (
            "notification-priority"
        )

    def test_future_schedule_beats_priority(
        self, router, make_notification, make_scheduling_info
    ):
        """Test a future send time routes to the scheduled topic even when urgent."""
        notification = make_notification(
            priority=NotificationPriority.CRITICAL,
            scheduling_info=make_scheduling_info(delay=timedelta(minutes=30)),
        )

        assert router.select_topic(notification) == "notification-scheduled"

    def test_schedule_reached_falls_back(
        self, router, make_notification, make_scheduling_info, clock
    ):
        """Test once the send time arrives the notification routes normally."""
        notification = make_notification(
            scheduling_info=make_scheduling_info(delay=timedelta(minutes=30))
        )

        clock.advance(minutes=30)

        assert router.select_topic(notification) == "notification-created"

    def test_custom_topics(self, clock, make_notification):
        """Test topic names are configurable."""
        router = DispatchRouter(
            created_topic="n.created",
            priority_topic="n.priority",
            scheduled_topic="n.scheduled",
            clock=clock,
        )

        assert router.select_topic(make_notification()) == "n.created"
        assert router.select_topic(make_notification(priority=NotificationPriority.HIGH)) == (
            "n.priority"
        )


class TestRouting:
    """Test suite for DispatchRouter.route payloads."""

    def test_payload_fields(self, router, make_notification, now):
        """Test the message carries identity, channels and a timestamp."""
        notification = make_notification(metadata={"post_id": "42"})

        message = router.route(notification)

        assert message.topic == "notification-created"
        assert message.payload == {
            "notification_id": str(notification.id),
            "recipient_id": "user-42",
            "type": "POST_APPROVED",
            "priority": "NORMAL",
            "channels": ["EMAIL", "PUSH"],
            "scheduled_at": None,
            "metadata": {"post_id": "42"},
            "timestamp": now.isoformat(),
        }
        assert message.attributes == {
            "notification_id": str(notification.id),
            "priority": "NORMAL",
            "type": "POST_APPROVED",
        }

    def test_payload_includes_schedule(self, router, make_notification, make_scheduling_info):
        """Test scheduled_at is rendered as ISO 8601."""
        info = make_scheduling_info()
        notification = make_notification(scheduling_info=info)

        message = router.route(notification)

        assert message.topic == "notification-scheduled"
        assert message.payload["scheduled_at"] == info.scheduled_at.isoformat()

    def test_explicit_instant_overrides_clock(self, router, make_notification, make_scheduling_info, now):
        """Test routing at a given instant."""
        notification = make_notification(scheduling_info=make_scheduling_info())
        later = now + timedelta(hours=2)

        message = router.route(notification, later)

        assert message.topic == "notification-created"
        assert message.payload["timestamp"] == later.isoformat()
