"""
Per-operation result models (ephemeral, never persisted).

Writes and batch items report their outcome as values instead of
exceptions so the batch loop can aggregate them.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, model_validator


class WriteOutcome(str, Enum):
    """Outcome of an idempotent write."""

    WRITTEN = "written"
    CONFLICT = "conflict"
    STORE_ERROR = "store_error"


class ExportStatus(str, Enum):
    """Outcome of a record export."""

    EXPORTED = "exported"
    NOT_FOUND = "not_found"


class WriteResult(BaseModel):
    """
    Outcome of writing one record.

    Attributes:
        record_id: Identity of the record that was written
        outcome: written, conflict or store_error
        error: Error description when outcome is store_error
    """

    record_id: str
    outcome: WriteOutcome
    error: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        """Written and conflict both count as success (idempotent replay)."""
        return self.outcome in (WriteOutcome.WRITTEN, WriteOutcome.CONFLICT)


class ItemResult(BaseModel):
    """
    Outcome of processing one delivered message.

    Attributes:
        delivery_id: Transport delivery id of the message
        succeeded: Whether the message was durably handled
        record_id: Identity of the decoded record, if decoding got that far
        outcome: Write outcome, if the write was attempted
        error: Serialized error for failed items
    """

    delivery_id: str
    succeeded: bool
    record_id: str | None = None
    outcome: WriteOutcome | None = None
    error: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_failure_has_error(self):
        """Validate that a failed item carries an error description."""
        if not self.succeeded and not self.error:
            raise ValueError("failed item must carry an error")
        return self


class ExportResult(BaseModel):
    """
    Outcome of exporting a record to blob storage.

    Attributes:
        record_id: Identity of the requested record
        status: exported or not_found
        key: Blob key written (exported only)
        document: Exported JSON document (exported only)
    """

    record_id: str
    status: ExportStatus
    key: str | None = None
    document: dict[str, Any] | None = None

    @property
    def found(self) -> bool:
        return self.status == ExportStatus.EXPORTED
