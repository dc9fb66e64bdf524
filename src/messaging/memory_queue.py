"""
In-process message queue with visibility-timeout semantics.

Behaves like the PostgreSQL queue for tests and local runs.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from src.core.models import Batch, DeliveredMessage


@dataclass
class _QueuedMessage:
    message_id: str
    body: str
    attributes: dict[str, str] = field(default_factory=dict)
    visible_at: float = 0.0
    receive_count: int = 0


class InMemoryMessageQueue:
    """
    Lock-protected FIFO queue.

    Args:
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._messages: list[_QueuedMessage] = []
        self._lock = threading.Lock()

    def send(self, body: str, attributes: dict[str, str] | None = None) -> str:
        message_id = str(uuid.uuid4())
        with self._lock:
            self._messages.append(
                _QueuedMessage(
                    message_id=message_id,
                    body=body,
                    attributes=dict(attributes or {}),
                    visible_at=self._clock(),
                )
            )
        return message_id

    def receive(self, max_messages: int, visibility_timeout: float) -> Batch:
        now = self._clock()
        delivered = []
        with self._lock:
            for message in self._messages:
                if len(delivered) >= max_messages:
                    break
                if message.visible_at <= now:
                    message.visible_at = now + visibility_timeout
                    message.receive_count += 1
                    delivered.append(
                        DeliveredMessage(
                            delivery_id=message.message_id,
                            body=message.body,
                            attributes=dict(message.attributes),
                            receive_count=message.receive_count,
                        )
                    )
        return Batch(messages=delivered)

    def acknowledge(self, delivery_ids: list[str]) -> int:
        ids = set(delivery_ids)
        with self._lock:
            before = len(self._messages)
            self._messages = [m for m in self._messages if m.message_id not in ids]
            return before - len(self._messages)

    def release(self, delivery_ids: list[str]) -> int:
        ids = set(delivery_ids)
        now = self._clock()
        released = 0
        with self._lock:
            for message in self._messages:
                if message.message_id in ids:
                    message.visible_at = now
                    released += 1
        return released

    def stats(self) -> dict[str, int]:
        now = self._clock()
        with self._lock:
            visible = sum(1 for m in self._messages if m.visible_at <= now)
            return {
                "total": len(self._messages),
                "visible": visible,
                "in_flight": len(self._messages) - visible,
            }
