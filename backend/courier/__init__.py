"""Courier: notification lifecycle and delivery/retry service."""

__version__ = "0.1.0"
