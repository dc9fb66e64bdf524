"""
Prometheus metrics collection for the record pipeline

This module provides metrics instrumentation for monitoring batch
consumption, idempotent writes, exports and ingress.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# WRITE METRICS
# =======================

# Idempotent write outcomes
records_written_total = Counter(
    name="pipeline_records_written_total",
    documentation="Total number of record write attempts by outcome",
    labelnames=["outcome"],  # outcome: written, conflict, store_error
    registry=REGISTRY,
)

# Undecodable bodies stored through the fallback record
fallback_records_total = Counter(
    name="pipeline_fallback_records_total",
    documentation="Total number of message bodies stored as raw fallback records",
    registry=REGISTRY,
)

# =======================
# BATCH METRICS
# =======================

batch_items_failed_total = Counter(
    name="pipeline_batch_items_failed_total",
    documentation="Total number of batch items reported for redelivery",
    registry=REGISTRY,
)

batches_processed_total = Counter(
    name="pipeline_batches_processed_total",
    documentation="Total number of batches processed",
    labelnames=["status"],  # status: success, partial_failure, malformed
    registry=REGISTRY,
)

batch_size = Histogram(
    name="pipeline_batch_size_messages",
    documentation="Number of messages in each delivered batch",
    buckets=[1, 2, 5, 10, 25, 50, 100],
    registry=REGISTRY,
)

batch_duration_seconds = Histogram(
    name="pipeline_batch_duration_seconds",
    documentation="Time spent processing a delivered batch in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

# =======================
# INGRESS / EXPORT METRICS
# =======================

messages_enqueued_total = Counter(
    name="pipeline_messages_enqueued_total",
    documentation="Total number of messages enqueued by ingress",
    registry=REGISTRY,
)

exports_total = Counter(
    name="pipeline_exports_total",
    documentation="Total number of export requests by status",
    labelnames=["status"],  # status: exported, not_found, error
    registry=REGISTRY,
)

# =======================
# ERROR METRICS
# =======================

errors_total = Counter(
    name="pipeline_errors_total",
    documentation="Total number of errors",
    labelnames=["component", "error_type"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """
    Get content type for Prometheus metrics

    Returns:
        Content type string
    """
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def get_sample_value(name: str, labels: Optional[dict] = None) -> float:
    """
    Read the current value of a sample from the pipeline registry

    Args:
        name: Sample name (e.g. pipeline_records_written_total)
        labels: Label values of the sample

    Returns:
        Sample value, 0.0 if the sample does not exist yet
    """
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


# =======================
# METRICS COLLECTOR CLASS
# =======================

class MetricsCollector:
    """
    Metrics collector for pipeline components.

    This class provides a unified interface for collecting metrics
    from the consumer, writer, ingress and exporter.
    """

    def record_write(self, outcome: str) -> None:
        """
        Record an idempotent write outcome.

        Args:
            outcome: written, conflict or store_error
        """
        records_written_total.labels(outcome=outcome).inc()

    def record_fallback(self) -> None:
        """Record that a body was stored through the fallback record."""
        fallback_records_total.inc()

    def record_batch(
        self,
        message_count: int,
        failed_count: int,
        duration_seconds: float = 0.0,
    ) -> None:
        """
        Record a batch processing event.

        Args:
            message_count: Number of messages in the batch
            failed_count: Number of messages reported for redelivery
            duration_seconds: Time taken to process the batch
        """
        status = "success" if failed_count == 0 else "partial_failure"
        batches_processed_total.labels(status=status).inc()
        batch_size.observe(message_count)
        if failed_count > 0:
            batch_items_failed_total.inc(failed_count)
        if duration_seconds > 0:
            batch_duration_seconds.observe(duration_seconds)

    def record_malformed_batch(self) -> None:
        """Record a batch rejected because its envelope was unusable."""
        batches_processed_total.labels(status="malformed").inc()

    def record_enqueue(self) -> None:
        messages_enqueued_total.inc()

    def record_export(self, status: str) -> None:
        """
        Record an export request.

        Args:
            status: exported, not_found or error
        """
        exports_total.labels(status=status).inc()

    def record_error(self, component: str, error: BaseException) -> None:
        """
        Record an error.

        Args:
            component: Component where the error happened (consumer, ingress, export, ...)
            error: The exception
        """
        errors_total.labels(component=component, error_type=type(error).__name__).inc()
