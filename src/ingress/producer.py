"""
Ingress producer: turns an inbound request body into a queued record payload.
"""

import json
from typing import Any

from src.core.decode import safe_json_parse
from src.core.models import utc_now_iso
from src.core.models.message import CORRELATION_ATTRIBUTE
from src.messaging.base import MessageQueue
from src.observability.logger import ContextLogger, create_logger
from src.observability.metrics import MetricsCollector


def build_payload(raw_body: str | bytes | None, request_id: str) -> dict[str, Any]:
    """
    Build the Record-shaped payload for an inbound request.

    A missing, unparseable or non-object body is treated as {}.

    Args:
        raw_body: Request body
        request_id: Correlation id of the request

    Returns:
        Payload with id, createdAt, data and requestId
    """
    body = safe_json_parse(raw_body, default={})
    if not isinstance(body, dict):
        body = {}

    record_id = body.get("id")
    if isinstance(record_id, bool) or not isinstance(record_id, (str, int)) or record_id == "":
        record_id = request_id

    return {
        "id": str(record_id),
        "createdAt": utc_now_iso(),
        "data": body.get("data"),
        "requestId": request_id,
    }


class IngressProducer:
    """
    Accepts inbound requests and enqueues them for the batch consumer.
    """

    def __init__(
        self,
        queue: MessageQueue,
        logger: ContextLogger | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize producer.

        Args:
            queue: Message queue feeding the consumer
            logger: Base logger
            metrics: Metrics collector
        """
        self.queue = queue
        self.logger = logger or create_logger()
        self.metrics = metrics or MetricsCollector()

    def enqueue(
        self,
        raw_body: str | bytes | None,
        request_id: str,
        logger: ContextLogger | None = None,
    ) -> dict[str, Any]:
        """
        Enqueue a request body.

        Args:
            raw_body: Request body
            request_id: Correlation id, stamped on the payload and as a message attribute
            logger: Request-scoped logger

        Returns:
            The enqueued payload

        Raises:
            QueueError: If the queue rejects the message
        """
        log = logger or self.logger.child({"requestId": request_id})
        payload = build_payload(raw_body, request_id)

        message_id = self.queue.send(
            json.dumps(payload),
            attributes={CORRELATION_ATTRIBUTE: request_id},
        )

        self.metrics.record_enqueue()
        log.info("Enqueued message", extra={"id": payload["id"], "messageId": message_id})
        return payload
