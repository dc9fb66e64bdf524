"""
Core data models for the idempotent record pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .message import Batch, BatchOutcome, DeliveredMessage
from .record import Record, utc_now_iso
from .results import ExportResult, ExportStatus, ItemResult, WriteOutcome, WriteResult

__all__ = [
    "Record",
    "DeliveredMessage",
    "Batch",
    "BatchOutcome",
    "WriteOutcome",
    "WriteResult",
    "ItemResult",
    "ExportStatus",
    "ExportResult",
    "utc_now_iso",
]
