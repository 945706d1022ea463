"""Notification module.

Lifecycle and delivery/retry engine for notifications:
- Domain layer: status state machine, channel policies, failure classification, routing
- Application layer: send/record-attempt use cases and the retry scheduler
- Infrastructure layer: SQLAlchemy persistence
"""
