"""
Consumer runner: polls the queue and feeds batches to the BatchConsumer.

Successful deliveries are acknowledged; failed ones are left in the queue
and come back after the visibility timeout.
"""

import threading

from src.core.errors import MalformedBatchError, QueueError, serialize_error
from src.core.models import BatchOutcome
from src.messaging.base import MessageQueue
from src.observability.logger import ContextLogger, create_logger

from .batch_consumer import BatchConsumer


class ConsumerRunner:
    """
    Receive -> process -> acknowledge loop.

    Each iteration is independent: no state is carried between batches.
    """

    def __init__(
        self,
        queue: MessageQueue,
        consumer: BatchConsumer,
        visibility_timeout: float = 30.0,
        poll_interval: float = 1.0,
        logger: ContextLogger | None = None,
    ):
        """
        Initialize runner.

        Args:
            queue: Message queue to drain
            consumer: Batch consumer
            visibility_timeout: Seconds a received batch stays hidden from other receivers
            poll_interval: Seconds to wait when the queue is empty
            logger: Base logger
        """
        self.queue = queue
        self.consumer = consumer
        self.visibility_timeout = visibility_timeout
        self.poll_interval = poll_interval
        self.logger = logger or create_logger()
        self._stop = threading.Event()

    def run_once(self) -> BatchOutcome | None:
        """
        Receive and process a single batch.

        Returns:
            BatchOutcome, or None if no message was visible

        Raises:
            MalformedBatchError: If the consumer rejects the batch (nothing is acknowledged)
            QueueError: If receiving or acknowledging fails
        """
        batch = self.queue.receive(self.consumer.max_batch_size, self.visibility_timeout)
        if not batch.messages:
            return None

        outcome = self.consumer.process(batch)

        failed = set(outcome.failed_delivery_ids)
        handled = [d for d in batch.delivery_ids if d not in failed]
        acknowledged = self.queue.acknowledge(handled)

        if failed:
            self.logger.warning(
                "Batch items left for redelivery",
                extra={"failedIds": outcome.failed_delivery_ids, "acknowledged": acknowledged}
            )

        return outcome

    def run(self, max_batches: int | None = None, stop_when_empty: bool = False) -> int:
        """
        Poll until stopped or max_batches batches were processed.

        Args:
            max_batches: Stop after this many non-empty batches (None = run until stop())
            stop_when_empty: Return as soon as a receive comes back empty

        Returns:
            Number of batches processed
        """
        processed = 0
        self.logger.info("Consumer started", extra={"maxBatches": max_batches})

        while not self._stop.is_set():
            if max_batches is not None and processed >= max_batches:
                break

            try:
                outcome = self.run_once()
            except MalformedBatchError as e:
                # Nothing acknowledged; the messages come back after the timeout
                self.logger.error("Batch rejected", extra={"error": serialize_error(e)})
                self._stop.wait(self.poll_interval)
                continue
            except QueueError as e:
                # Unacknowledged messages come back after the timeout
                self.logger.error("Queue operation failed", extra={"error": serialize_error(e)})
                self.consumer.metrics.record_error("runner", e)
                self._stop.wait(self.poll_interval)
                continue

            if outcome is None:
                if stop_when_empty:
                    break
                self._stop.wait(self.poll_interval)
                continue

            processed += 1

        self.logger.info("Consumer stopped", extra={"batchesProcessed": processed})
        return processed

    def stop(self) -> None:
        """Request the loop to stop after the current batch."""
        self._stop.set()
