"""
Record exporter: copies a persisted record to blob storage as JSON.
"""

import json

from src.core.models import ExportResult, ExportStatus, utc_now_iso
from src.observability.logger import ContextLogger, create_logger
from src.observability.metrics import MetricsCollector
from src.utils.validation import validate_record_id
from src.warehouse.store import RecordStore

from .blob_store import BlobStore

EXPORT_PREFIX = "exports"
EXPORT_CONTENT_TYPE = "application/json"


def export_key(record_id: str) -> str:
    """Blob key of a record's export."""
    return f"{EXPORT_PREFIX}/{record_id}.json"


class Exporter:
    """
    Reads a record by id and writes it to blob storage.

    Absent records are reported as not found without touching blob storage.
    """

    def __init__(
        self,
        store: RecordStore,
        blob_store: BlobStore,
        logger: ContextLogger | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize exporter.

        Args:
            store: Record store to read from
            blob_store: Blob storage to write to
            logger: Base logger
            metrics: Metrics collector
        """
        self.store = store
        self.blob_store = blob_store
        self.logger = logger or create_logger()
        self.metrics = metrics or MetricsCollector()

    def export(self, record_id: str, logger: ContextLogger | None = None) -> ExportResult:
        """
        Export a single record.

        Args:
            record_id: Identity of the record
            logger: Request-scoped logger

        Returns:
            ExportResult (exported or not_found)

        Raises:
            ValidationError: If record_id is empty or not usable as a blob key
            StoreError: If the record store read fails
            BlobStoreError: If the blob write fails
        """
        record_id = validate_record_id(record_id, field_name="id")
        log = logger or self.logger

        record = self.store.get(record_id)
        if record is None:
            self.metrics.record_export(ExportStatus.NOT_FOUND.value)
            log.info("Record not found for export", extra={"id": record_id})
            return ExportResult(record_id=record_id, status=ExportStatus.NOT_FOUND)

        document = {**record.to_document(), "exportedAt": utc_now_iso()}
        key = export_key(record_id)

        self.blob_store.put_object(
            key,
            json.dumps(document).encode("utf-8"),
            EXPORT_CONTENT_TYPE,
        )

        self.metrics.record_export(ExportStatus.EXPORTED.value)
        log.info("Exported record", extra={"id": record_id, "key": key})
        return ExportResult(record_id=record_id, status=ExportStatus.EXPORTED, key=key, document=document)
