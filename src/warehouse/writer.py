"""
Idempotent write operations for records.

A write succeeds exactly once per record id; replays of the same id are
reported as conflicts and leave the stored record untouched.
"""

import logging

from src.core.errors import StoreError, serialize_error
from src.core.models import Record, WriteOutcome, WriteResult
from src.observability.logger import ContextLogger, create_logger
from src.observability.metrics import MetricsCollector

from .store import RecordStore


class IdempotentWriter:
    """
    Writes Records through a store's atomic insert-if-absent.

    Outcomes:
    - WRITTEN: the id was new and the record is now durable
    - CONFLICT: the id already existed; nothing changed (success for the caller)
    - STORE_ERROR: infrastructure failure; the caller must have it redelivered

    Payloads are not compared on conflict: a second payload under an
    existing id is discarded.
    """

    def __init__(
        self,
        store: RecordStore,
        logger: ContextLogger | logging.LoggerAdapter | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize writer.

        Args:
            store: Record store with conditional-insert semantics
            logger: Logger used when the caller does not pass one
            metrics: Metrics collector for write outcomes
        """
        self.store = store
        self.logger = logger or create_logger()
        self.metrics = metrics or MetricsCollector()

    def write(
        self,
        record: Record,
        logger: ContextLogger | logging.LoggerAdapter | None = None,
    ) -> WriteResult:
        """
        Write a single record.

        Args:
            record: Record to persist
            logger: Per-item logger (defaults to the writer's logger)

        Returns:
            WriteResult describing the outcome
        """
        log = logger or self.logger

        try:
            outcome = self.store.insert_if_absent(record)
        except StoreError as e:
            log.error("Record store write failed", extra={"id": record.id, "error": serialize_error(e)})
            self.metrics.record_write(WriteOutcome.STORE_ERROR.value)
            return WriteResult(record_id=record.id, outcome=WriteOutcome.STORE_ERROR, error=serialize_error(e))

        self.metrics.record_write(outcome.value)

        if outcome == WriteOutcome.WRITTEN:
            log.info("Wrote record", extra={"id": record.id})
        else:
            log.info("Record already exists, skipping duplicate write", extra={"id": record.id})

        return WriteResult(record_id=record.id, outcome=outcome)
