"""
Message Publisher Interface

Port to the message transport that carries routing messages to the
channel-specific delivery workers.
"""

from abc import ABC, abstractmethod
from typing import Any


class IMessagePublisher(ABC):
    """Port for publishing routing messages to a topic."""

    @abstractmethod
    async def publish(
        self,
        topic: str,
        payload: dict[str, Any],
        attributes: dict[str, str] | None = None,
    ) -> str:
        """
        Publish a message to the specified topic.

        Args:
            topic: Destination topic name
            payload: JSON-compatible message body
            attributes: Optional string attributes for filtering on the subscriber side

        Returns:
            Transport-assigned message id

        Raises:
            InfrastructureError: If the transport rejects the message
        """
        ...
