"""Tests for NotificationMapper."""

from datetime import timedelta

import pytest

from courier.core.errors import ValidationError
from courier.modules.notification.domain.enums import (
    DeliveryChannel,
    NotificationStatus,
    RecurrencePattern,
)
from courier.modules.notification.infrastructure.mappers import NotificationMapper
from courier.modules.notification.infrastructure.models import NotificationModel


@pytest.fixture
def sent_notification(make_notification, make_scheduling_info, rich_content, clock):
    notification = make_notification(
        content=rich_content,
        scheduling_info=make_scheduling_info(
            timezone="America/New_York", recurrence=RecurrencePattern.DAILY
        ),
        metadata={"post_id": "42"},
        template_id="post-approved-v2",
        template_variables={"name": "Ada"},
        expires_at=clock.now() + timedelta(days=2),
    )
    notification.mark_as_processing()
    notification.record_delivery_attempt(
        DeliveryChannel.EMAIL, success=False, error="Gateway timeout", response_code=504
    )
    clock.advance(minutes=1)
    notification.mark_as_processing()
    notification.record_delivery_attempt(
        DeliveryChannel.PUSH, success=True, external_id="fcm-9", response_time=120
    )
    notification.clear_domain_events()
    return notification


class TestToRecord:
    """Test suite for flattening aggregates."""

    def test_columns(self, sent_notification, now):
        """Test enum values, priority level and JSON-ready attempts."""
        record = NotificationMapper.to_record(sent_notification)

        assert record["id"] == str(sent_notification.id)
        assert record["status"] == "SENT"
        assert record["priority"] == "NORMAL"
        assert record["priority_level"] == 2
        assert record["delivery_channels"] == ["EMAIL", "PUSH"]
        assert record["attempt_count"] == 2
        assert record["delivery_attempts"][0]["error"] == "Gateway timeout"
        assert record["timezone"] == "America/New_York"
        assert record["recurrence"] == "DAILY"
        assert record["metadata"] == {"post_id": "42"}
        assert record["sent_at"] == now + timedelta(minutes=1)

    def test_sent_at_only_for_sent(self, notification):
        """Test unsent notifications have no sent_at."""
        assert NotificationMapper.to_record(notification)["sent_at"] is None


class TestFromRecord:
    """Test suite for rebuilding aggregates."""

    def test_restores_aggregate(self, sent_notification, clock):
        """Test the rebuilt aggregate matches the original."""
        restored = NotificationMapper.from_record(
            NotificationMapper.to_record(sent_notification), clock
        )

        assert restored.id == sent_notification.id
        assert restored.status is NotificationStatus.SENT
        assert restored.content == sent_notification.content
        assert restored.scheduling_info == sent_notification.scheduling_info
        assert restored.delivery_attempts == sent_notification.delivery_attempts
        assert restored.template_variables == {"name": "Ada"}
        assert restored.expires_at == sent_notification.expires_at
        assert restored.updated_at == sent_notification.updated_at
        assert restored.get_domain_events() == []

    def test_naive_and_iso_datetimes_are_utc(self, notification, now):
        """Test values read back from SQLite or JSON are normalised to UTC."""
        record = NotificationMapper.to_record(notification)
        record["created_at"] = now.replace(tzinfo=None)
        record["updated_at"] = now.isoformat()

        restored = NotificationMapper.from_record(record)

        assert restored.created_at == now
        assert restored.created_at.tzinfo is not None
        assert restored.updated_at == now

    def test_past_schedule_is_restored(self, make_notification, make_scheduling_info, clock):
        """Test a send time that has since passed still loads."""
        notification = make_notification(scheduling_info=make_scheduling_info())
        notification.schedule(notification.scheduling_info)
        record = NotificationMapper.to_record(notification)

        clock.advance(days=400)

        assert NotificationMapper.from_record(record, clock).status is NotificationStatus.SCHEDULED

    def test_missing_field(self, notification):
        """Test incomplete records raise ValidationError."""
        record = NotificationMapper.to_record(notification)
        del record["recipient_id"]

        with pytest.raises(ValidationError, match="recipient_id"):
            NotificationMapper.from_record(record)

    def test_unknown_status(self, notification):
        """Test unknown enum values raise ValidationError."""
        record = NotificationMapper.to_record(notification)
        record["status"] = "DELIVERED"

        with pytest.raises(ValidationError):
            NotificationMapper.from_record(record)

    def test_inconsistent_history(self, sent_notification):
        """Test stored state is re-validated on load."""
        record = NotificationMapper.to_record(sent_notification)
        record["status"] = "PENDING"

        with pytest.raises(ValidationError):
            NotificationMapper.from_record(record)


class TestModelMapping:
    """Test suite for ORM row mapping."""

    def test_model_round_trip(self, sent_notification, clock):
        """Test metadata lands in the metadata_ attribute and back."""
        model = NotificationMapper.to_model(sent_notification)

        assert isinstance(model, NotificationModel)
        assert model.metadata_ == {"post_id": "42"}
        assert model.priority_level == 2

        restored = NotificationMapper.from_model(model, clock)
        assert restored.id == sent_notification.id
        assert restored.metadata == {"post_id": "42"}

    def test_update_model_overwrites_row(self, notification):
        """Test update_model copies the current state onto an existing row."""
        model = NotificationMapper.to_model(notification)
        notification.cancel()

        NotificationMapper.update_model(model, notification)

        assert model.status == "CANCELLED"
