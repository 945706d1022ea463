"""Notification application services."""

from .retry_scheduler import RetryScheduler, SchedulerRunSummary

__all__ = ["RetryScheduler", "SchedulerRunSummary"]
