"""
Message queue interface shared by the producer and the consumer runner.

Delivery is at-least-once: a received message is hidden for the
visibility timeout and becomes receivable again unless acknowledged.
"""

from typing import Protocol, runtime_checkable

from src.core.models import Batch


@runtime_checkable
class MessageQueue(Protocol):
    """Durable queue with visibility-timeout redelivery."""

    def send(self, body: str, attributes: dict[str, str] | None = None) -> str:
        """Enqueue a message and return its message id. Raises QueueError."""
        ...

    def receive(self, max_messages: int, visibility_timeout: float) -> Batch:
        """Receive up to max_messages visible messages. Raises QueueError."""
        ...

    def acknowledge(self, delivery_ids: list[str]) -> int:
        """Delete handled messages and return how many were removed."""
        ...

    def release(self, delivery_ids: list[str]) -> int:
        """Make received messages visible again immediately."""
        ...

    def stats(self) -> dict[str, int]:
        """Queue depth: total, visible and in_flight message counts."""
        ...
