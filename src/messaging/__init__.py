"""
Message queues delivering record payloads to the batch consumer.
"""

from .base import MessageQueue
from .memory_queue import InMemoryMessageQueue
from .pg_queue import PostgresMessageQueue

__all__ = [
    "MessageQueue",
    "InMemoryMessageQueue",
    "PostgresMessageQueue",
]
