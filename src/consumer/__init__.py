"""
Queue consumption: batch processing and the polling runner.
"""

from .batch_consumer import BatchConsumer
from .runner import ConsumerRunner

__all__ = [
    "BatchConsumer",
    "ConsumerRunner",
]
