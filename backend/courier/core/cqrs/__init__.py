"""Command side of CQRS."""

from .base import Command, CommandHandler

__all__ = ["Command", "CommandHandler"]
