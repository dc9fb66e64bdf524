"""
Exception hierarchy for the record pipeline.

Decode failures and write conflicts are not errors (they are recovered
in place); everything here is an infrastructure fault or a malformed
transport envelope.
"""

import traceback
from typing import Any


class PipelineError(Exception):
    """Base class for all pipeline errors."""
    pass


class StoreError(PipelineError):
    """
    Record store failure (timeout, throttling, permission, malformed key).

    Always retried by redelivery, never swallowed.
    """

    def __init__(self, message: str, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class QueueError(PipelineError):
    """Message queue failure while sending, receiving or acknowledging."""
    pass


class BlobStoreError(PipelineError):
    """Blob storage failure while writing an export."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class MalformedBatchError(PipelineError):
    """
    The batch envelope itself is unusable.

    Fatal for the whole invocation; no item of the batch is processed.
    """
    pass


def serialize_error(err: BaseException | None) -> dict[str, Any]:
    """
    Serialize an exception for structured logging.

    Args:
        err: Exception instance (may be None)

    Returns:
        Dictionary with message, name and stack
    """
    if err is None:
        return {"message": None, "name": None, "stack": None}

    stack = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    return {
        "message": str(err),
        "name": type(err).__name__,
        "stack": stack,
    }
