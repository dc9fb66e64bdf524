"""
Record model representing a single durably persisted item.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Record(BaseModel):
    """
    The canonical persisted item.

    Note: the store keeps at most one Record per id. Once written, a Record
    is never updated or deleted by the pipeline; export only reads it.

    Attributes:
        id: Identity of the record, used as the idempotency key
        created_at: ISO-8601 timestamp of first creation (immutable)
        request_id: Correlation id of the request that produced the record
        data: Opaque payload, stored verbatim (JSON value or raw string)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "order-1234",
                "createdAt": "2025-11-17T10:15:30.123Z",
                "requestId": "6f1c2d0e-8f5b-4a8e-9a57-1f0d3c2b4a10",
                "data": {"sku": "A-100", "quantity": 2},
            }
        },
    )

    id: str = Field(..., min_length=1)
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt", min_length=1)
    request_id: str | None = Field(default=None, alias="requestId")
    data: Any = None

    def to_document(self) -> dict[str, Any]:
        """
        Serialize the record with its wire field names.

        Returns:
            Dictionary with id, createdAt, requestId and data
        """
        return self.model_dump(by_alias=True)
