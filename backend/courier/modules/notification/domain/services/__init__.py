"""Notification domain services."""

from .dispatch_router import DispatchRouter, RoutingMessage

__all__ = ["DispatchRouter", "RoutingMessage"]
