"""Pytest fixtures for notification module tests.

Factories build aggregates on the shared frozen clock so time-dependent
behaviour (expiry, scheduling, retry backoff) is driven by ``clock.advance``.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from courier.modules.notification.domain.entities import Notification
from courier.modules.notification.domain.enums import (
    DeliveryChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from courier.modules.notification.domain.interfaces import (
    IMessagePublisher,
    INotificationRepository,
)
from courier.modules.notification.domain.services import DispatchRouter
from courier.modules.notification.domain.value_objects import (
    DeliveryAttempt,
    NotificationContent,
    NotificationId,
    SchedulingInfo,
)

# ============================================================================
# Value Object Fixtures
# ============================================================================


@pytest.fixture
def basic_content():
    """Plain title and message."""
    return NotificationContent(
        title="Your post was approved",
        message="It is now visible to everyone in your area.",
    )


@pytest.fixture
def rich_content():
    """Content with an image and a call to action."""
    return NotificationContent(
        title="New listing near you",
        message="A vintage bike was just posted two streets away.",
        image_url="https://cdn.example.com/bike.jpg",
        action_url="https://example.com/posts/42",
        action_text="View listing",
    )


@pytest.fixture
def make_scheduling_info(clock):
    """Build scheduling info relative to the frozen clock."""

    def _make(delay=timedelta(hours=1), **kwargs):
        return SchedulingInfo(scheduled_at=clock.now() + delay, now=clock.now(), **kwargs)

    return _make


# ============================================================================
# Aggregate Fixtures
# ============================================================================


@pytest.fixture
def make_notification(clock, basic_content):
    """Build a fresh PENDING notification; keyword arguments override defaults."""

    def _make(**overrides):
        params = {
            "recipient_id": "user-42",
            "notification_type": NotificationType.POST_APPROVED,
            "content": basic_content,
            "delivery_channels": [DeliveryChannel.EMAIL, DeliveryChannel.PUSH],
            "priority": NotificationPriority.NORMAL,
            "clock": clock,
        }
        params.update(overrides)
        return Notification(**params)

    return _make


@pytest.fixture
def notification(make_notification):
    """A fresh PENDING notification with its creation event drained."""
    n = make_notification()
    n.clear_domain_events()
    return n


@pytest.fixture
def processing_notification(notification):
    """A notification handed to delivery."""
    notification.mark_as_processing()
    return notification


@pytest.fixture
def make_retry_notification(clock, basic_content):
    """Rehydrate a RETRY notification with one failed EMAIL attempt."""

    def _make(failed_at=None, priority=NotificationPriority.NORMAL, **overrides):
        attempt = DeliveryAttempt.create_failure(
            channel=DeliveryChannel.EMAIL,
            attempted_at=failed_at or clock.now(),
            error="Service unavailable",
            response_code=503,
        )
        params = {
            "notification_id": NotificationId.generate(),
            "recipient_id": "user-42",
            "notification_type": NotificationType.POST_APPROVED,
            "content": basic_content,
            "delivery_channels": [DeliveryChannel.EMAIL],
            "priority": priority,
            "status": NotificationStatus.RETRY,
            "created_at": clock.now() - timedelta(hours=1),
            "delivery_attempts": [attempt],
            "clock": clock,
        }
        params.update(overrides)
        return Notification.rehydrate(**params)

    return _make


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def router(clock):
    """Dispatch router on the default topics."""
    return DispatchRouter(clock=clock)


@pytest.fixture
def mock_repository():
    """Repository double; finders return nothing unless a test says otherwise."""
    repository = AsyncMock(spec=INotificationRepository)
    repository.find_by_id.return_value = None
    repository.find_expired.return_value = []
    repository.find_due_scheduled.return_value = []
    repository.find_retryable.return_value = []
    return repository


@pytest.fixture
def mock_publisher():
    """Message publisher double returning a fixed message id."""
    publisher = AsyncMock(spec=IMessagePublisher)
    publisher.publish.return_value = "msg-1"
    return publisher
