"""Notification domain entities."""

from .notification import DEFAULT_MAX_RETRIES, Notification

__all__ = ["DEFAULT_MAX_RETRIES", "Notification"]
