"""Notification domain value objects."""

from .delivery_attempt import DeliveryAttempt
from .notification_content import NotificationContent
from .notification_id import NotificationId
from .scheduling_info import SchedulingInfo

__all__ = [
    "DeliveryAttempt",
    "NotificationContent",
    "NotificationId",
    "SchedulingInfo",
]
