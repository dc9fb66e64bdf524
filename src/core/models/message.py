"""
Queue delivery models: delivered messages, batches and batch outcomes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.errors import MalformedBatchError

CORRELATION_ATTRIBUTE = "x-correlation-id"


class DeliveredMessage(BaseModel):
    """
    A single message handed to the consumer by the transport.

    Attributes:
        delivery_id: Transport-assigned id, unique within a batch (failure reporting only)
        body: Raw payload string, expected to decode into a Record
        attributes: Transport message attributes (observability only)
        receive_count: How many times the transport delivered this message
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    delivery_id: str = Field(..., min_length=1, alias="deliveryId")
    body: str
    attributes: dict[str, str] = Field(default_factory=dict)
    receive_count: int = Field(default=1, ge=1, alias="receiveCount")

    @property
    def correlation_id(self) -> str | None:
        """Correlation id stamped by the producer, if any."""
        return self.attributes.get(CORRELATION_ATTRIBUTE) or None


class Batch(BaseModel):
    """
    Ordered collection of delivered messages.

    The order is transport-assigned and carries no meaning.
    """

    messages: list[DeliveredMessage] = Field(default_factory=list)

    @field_validator("messages")
    @classmethod
    def check_unique_delivery_ids(cls, v):
        """Validate that delivery ids are unique within the batch."""
        seen = set()
        for message in v:
            if message.delivery_id in seen:
                raise ValueError(f"duplicate delivery id in batch: {message.delivery_id}")
            seen.add(message.delivery_id)
        return v

    @property
    def delivery_ids(self) -> list[str]:
        return [m.delivery_id for m in self.messages]

    @classmethod
    def from_event(cls, event: Any) -> "Batch":
        """
        Build a batch from a transport envelope.

        Expected shape::

            {"Records": [{"messageId": "...", "body": "...",
                          "messageAttributes": {"x-correlation-id": {"stringValue": "..."}}}]}

        Args:
            event: Decoded envelope

        Returns:
            Batch instance

        Raises:
            MalformedBatchError: If the envelope does not have the expected shape
        """
        if not isinstance(event, dict) or not isinstance(event.get("Records"), list):
            raise MalformedBatchError("batch envelope must be an object with a 'Records' list")

        messages = []
        for idx, entry in enumerate(event["Records"]):
            if not isinstance(entry, dict):
                raise MalformedBatchError(f"batch entry {idx} is not an object")
            try:
                messages.append(
                    DeliveredMessage(
                        delivery_id=entry.get("messageId"),
                        body=entry.get("body"),
                        attributes=_flatten_attributes(entry.get("messageAttributes")),
                        receive_count=_receive_count(entry),
                    )
                )
            except ValidationError as e:
                raise MalformedBatchError(f"batch entry {idx} is invalid: {e}") from e

        try:
            return cls(messages=messages)
        except ValidationError as e:
            raise MalformedBatchError(str(e)) from e


class BatchOutcome(BaseModel):
    """
    Result of processing a batch.

    Every delivery id not listed in failed_delivery_ids was fully and durably
    processed and must not be redelivered.

    Attributes:
        failed_delivery_ids: Delivery ids that must be redelivered, in delivery order
        processed_count: Number of messages in the batch
    """

    failed_delivery_ids: list[str] = Field(default_factory=list)
    processed_count: int = 0

    @property
    def failed_count(self) -> int:
        return len(self.failed_delivery_ids)

    @property
    def succeeded_count(self) -> int:
        return self.processed_count - self.failed_count

    def to_response(self) -> dict[str, list[dict[str, str]]]:
        """Render the partial-batch-failure response expected by the transport."""
        return {
            "batchItemFailures": [
                {"itemIdentifier": delivery_id} for delivery_id in self.failed_delivery_ids
            ]
        }


def _flatten_attributes(raw: Any) -> dict[str, str]:
    # Attributes arrive either as plain strings or as {"stringValue": ...} objects
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise MalformedBatchError("messageAttributes must be an object")
    flat = {}
    for name, value in raw.items():
        if isinstance(value, dict):
            value = value.get("stringValue", value.get("StringValue"))
        if value is not None:
            flat[str(name)] = str(value)
    return flat


def _receive_count(entry: dict) -> int:
    attrs = entry.get("attributes")
    if isinstance(attrs, dict):
        try:
            return max(int(attrs.get("ApproximateReceiveCount", 1)), 1)
        except (TypeError, ValueError):
            return 1
    return 1
