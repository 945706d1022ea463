"""Domain base classes."""

from .base import AggregateRoot, Entity, ValueObject

__all__ = ["AggregateRoot", "Entity", "ValueObject"]
