"""Notification application layer."""
