"""
Process-wide collaborator handles.

Built once at process start from PipelineSettings and passed explicitly
into the consumer, producer, exporter and HTTP app, so nothing in the
pipeline reaches for module-level clients.
"""

from dataclasses import dataclass
from pathlib import Path

from src.consumer import BatchConsumer, ConsumerRunner
from src.core.settings import PipelineSettings
from src.export import Exporter, LocalBlobStore, S3BlobStore
from src.export.blob_store import BlobStore
from src.ingress import IngressProducer
from src.messaging import InMemoryMessageQueue, MessageQueue, PostgresMessageQueue
from src.observability.logger import ContextLogger, create_logger, service_context, setup_logger
from src.observability.metrics import MetricsCollector
from src.warehouse.connection import DatabaseConnectionPool
from src.warehouse.schema_mgmt import SchemaManager
from src.warehouse.store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from src.warehouse.writer import IdempotentWriter


@dataclass
class Collaborators:
    """
    Handles shared by every unit of work in the process.

    Attributes:
        settings: Resolved settings
        logger: Base logger carrying the service context
        metrics: Metrics collector
        store: Record store
        queue: Message queue
        blob_store: Export blob storage
        pool: Database pool (None for the memory backend)
    """

    settings: PipelineSettings
    logger: ContextLogger
    metrics: MetricsCollector
    store: RecordStore
    queue: MessageQueue
    blob_store: BlobStore
    pool: DatabaseConnectionPool | None = None

    def writer(self) -> IdempotentWriter:
        return IdempotentWriter(self.store, logger=self.logger, metrics=self.metrics)

    def consumer(self, max_workers: int | None = None) -> BatchConsumer:
        return BatchConsumer(
            self.writer(),
            logger=self.logger,
            metrics=self.metrics,
            max_batch_size=self.settings.max_batch_size,
            max_workers=max_workers or self.settings.consumer_workers,
        )

    def runner(self, max_workers: int | None = None) -> ConsumerRunner:
        return ConsumerRunner(
            self.queue,
            self.consumer(max_workers),
            visibility_timeout=self.settings.visibility_timeout_seconds,
            poll_interval=self.settings.poll_interval_seconds,
            logger=self.logger,
        )

    def producer(self) -> IngressProducer:
        return IngressProducer(self.queue, logger=self.logger, metrics=self.metrics)

    def exporter(self) -> Exporter:
        return Exporter(self.store, self.blob_store, logger=self.logger, metrics=self.metrics)

    def close(self) -> None:
        """Release the database pool."""
        if self.pool is not None and self.pool.is_open:
            self.pool.close()


def build_blob_store(settings: PipelineSettings) -> BlobStore:
    """
    Build the blob store selected by settings.

    Args:
        settings: Pipeline settings

    Returns:
        S3BlobStore or LocalBlobStore
    """
    if settings.blob_backend == "local":
        return LocalBlobStore(Path(settings.blob_root))

    return S3BlobStore(
        bucket_name=settings.bucket_name,
        endpoint_url=settings.aws_endpoint_url,
        region_name=settings.aws_region,
    )


def build_collaborators(
    settings: PipelineSettings,
    ensure_schema: bool = False,
    function_name: str | None = None,
) -> Collaborators:
    """
    Build every collaborator handle for the process.

    Args:
        settings: Pipeline settings
        ensure_schema: Create the PostgreSQL tables if missing
        function_name: Name of the running unit (consumer, api, cli...) for log context

    Returns:
        Collaborators instance (call close() on shutdown)
    """
    setup_logger(level=settings.log_level, format_type=settings.log_format)
    logger = create_logger(
        service_context(
            settings.service_name,
            settings.service_version,
            functionName=function_name,
        )
    )
    metrics = MetricsCollector()
    blob_store = build_blob_store(settings)

    if settings.store_backend == "memory":
        return Collaborators(
            settings=settings,
            logger=logger,
            metrics=metrics,
            store=InMemoryRecordStore(),
            queue=InMemoryMessageQueue(),
            blob_store=blob_store,
        )

    pool = DatabaseConnectionPool.from_settings(settings)
    pool.open()
    if ensure_schema:
        SchemaManager(pool).ensure_schema()

    return Collaborators(
        settings=settings,
        logger=logger,
        metrics=metrics,
        store=PostgresRecordStore(pool),
        queue=PostgresMessageQueue(pool),
        blob_store=blob_store,
        pool=pool,
    )
