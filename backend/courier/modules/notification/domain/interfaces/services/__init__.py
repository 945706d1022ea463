"""
Notification Domain Service Interfaces

Ports the notification domain needs from the outside world.
"""

from .message_publisher import IMessagePublisher

__all__ = ["IMessagePublisher"]
