"""
Batch consumer: drains a delivered batch into the record store.

Flow per message: decode -> idempotent write -> classify.

Each message is handled in isolation. A failure is reported only as an
entry in the BatchOutcome so the transport redelivers that message
alone; the rest of the batch is acknowledged.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from src.core.decode import decode
from src.core.errors import MalformedBatchError, serialize_error
from src.core.models import Batch, BatchOutcome, DeliveredMessage, ItemResult
from src.observability.logger import ContextLogger, create_logger
from src.observability.metrics import MetricsCollector
from src.warehouse.writer import IdempotentWriter


class BatchConsumer:
    """
    Converts delivered messages into durable records with per-item isolation.

    No retries happen here: a failed item is named in the outcome and
    retried by redelivery. Items may run sequentially (max_workers=1) or on
    a bounded thread pool; the writer's atomic insert keeps either safe.
    """

    def __init__(
        self,
        writer: IdempotentWriter,
        logger: ContextLogger | None = None,
        metrics: MetricsCollector | None = None,
        max_batch_size: int = 10,
        max_workers: int = 1,
    ):
        """
        Initialize batch consumer.

        Args:
            writer: Idempotent record writer
            logger: Base logger (service context)
            metrics: Metrics collector
            max_batch_size: Largest batch accepted from the transport
            max_workers: Worker threads per batch (1 = sequential)
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.writer = writer
        self.logger = logger or create_logger()
        self.metrics = metrics or MetricsCollector()
        self.max_batch_size = max_batch_size
        self.max_workers = max_workers

    def process(self, batch: Batch) -> BatchOutcome:
        """
        Process every message of a batch.

        Args:
            batch: Delivered batch

        Returns:
            BatchOutcome naming exactly the delivery ids to redeliver

        Raises:
            MalformedBatchError: If the batch exceeds max_batch_size
        """
        if len(batch.messages) > self.max_batch_size:
            self.metrics.record_malformed_batch()
            raise MalformedBatchError(
                f"batch of {len(batch.messages)} messages exceeds max batch size {self.max_batch_size}"
            )

        start = time.monotonic()

        if self.max_workers > 1 and len(batch.messages) > 1:
            workers = min(self.max_workers, len(batch.messages))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-item") as pool:
                results = list(pool.map(self.process_message, batch.messages))
        else:
            results = [self.process_message(message) for message in batch.messages]

        outcome = BatchOutcome(
            failed_delivery_ids=[r.delivery_id for r in results if not r.succeeded],
            processed_count=len(results),
        )

        duration = time.monotonic() - start
        self.metrics.record_batch(len(results), outcome.failed_count, duration)
        self.logger.info(
            "Batch complete",
            extra={
                "batchSize": outcome.processed_count,
                "failedCount": outcome.failed_count,
                "duration_seconds": round(duration, 3),
            }
        )

        return outcome

    def process_message(self, message: DeliveredMessage) -> ItemResult:
        """
        Process a single message. Never raises.

        Args:
            message: Delivered message

        Returns:
            ItemResult for the message
        """
        log = self._item_logger(message)
        record_id = None

        try:
            record = decode(message.body, message.delivery_id, logger=log)
            record_id = record.id
            if record.id == message.delivery_id and record.data == message.body:
                self.metrics.record_fallback()

            result = self.writer.write(record, logger=log)
        except Exception as e:
            log.error("Failed processing message", extra={"error": serialize_error(e)})
            self.metrics.record_error("consumer", e)
            return ItemResult(
                delivery_id=message.delivery_id,
                succeeded=False,
                record_id=record_id,
                error=serialize_error(e),
            )

        return ItemResult(
            delivery_id=message.delivery_id,
            succeeded=result.succeeded,
            record_id=record_id,
            outcome=result.outcome,
            error=result.error,
        )

    def handle_event(self, event: Any) -> dict[str, list[dict[str, str]]]:
        """
        Process a transport envelope and build the partial-failure response.

        Args:
            event: Envelope of the form {"Records": [{"messageId", "body"}, ...]}

        Returns:
            {"batchItemFailures": [{"itemIdentifier": delivery_id}, ...]}

        Raises:
            MalformedBatchError: If the envelope is unusable
        """
        try:
            batch = Batch.from_event(event)
        except MalformedBatchError as e:
            self.metrics.record_malformed_batch()
            self.logger.error("Malformed batch envelope", extra={"error": serialize_error(e)})
            raise

        return self.process(batch).to_response()

    def _item_logger(self, message: DeliveredMessage) -> ContextLogger | logging.LoggerAdapter:
        context = {"messageId": message.delivery_id}
        if message.correlation_id:
            context["correlationId"] = message.correlation_id
        if message.receive_count > 1:
            context["receiveCount"] = message.receive_count
        return self.logger.child(context)
