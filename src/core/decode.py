"""
Decoding of delivered message bodies into Records.

decode() is total: every input yields a Record. Bodies that are not a
Record-shaped JSON object fall back to a Record keyed by the delivery id
that stores the raw body verbatim.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from src.core.models import Record, utc_now_iso


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def safe_json_parse(raw: str | bytes | None, default: Any = None) -> Any:
    """
    Parse JSON, returning a default on any parse failure.

    Args:
        raw: JSON text
        default: Value returned when raw is empty or not valid JSON
            (NaN, Infinity and -Infinity are not valid JSON)

    Returns:
        Parsed value or default
    """
    if raw is None or raw == "" or raw == b"":
        return default
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError):
        return default


def fallback_record(delivery_id: str, raw: Any) -> Record:
    """
    Build the best-effort Record for an undecodable body.

    Args:
        delivery_id: Transport delivery id, used as the record id
        raw: Message body, stored verbatim as data

    Returns:
        Record keyed by the delivery id
    """
    return Record(id=delivery_id, created_at=utc_now_iso(), request_id=None, data=raw)


def parse_record(payload: Any) -> Record | None:
    """
    Interpret a parsed JSON value as a Record.

    Args:
        payload: Parsed JSON value

    Returns:
        Record, or None if the value is not Record-shaped
    """
    if not isinstance(payload, dict):
        return None

    record_id = payload.get("id")
    if isinstance(record_id, bool) or not isinstance(record_id, (str, int)):
        return None
    record_id = str(record_id)
    if not record_id:
        return None

    created_at = payload.get("createdAt") or utc_now_iso()
    request_id = payload.get("requestId") or None

    try:
        return Record(
            id=record_id,
            created_at=created_at,
            request_id=request_id,
            data=payload.get("data"),
        )
    except ValidationError:
        return None


def decode(
    raw: str | None,
    delivery_id: str,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> Record:
    """
    Decode a delivered message body into a Record.

    Args:
        raw: Message body
        delivery_id: Transport delivery id of the message
        logger: Optional logger notified when the fallback is used

    Returns:
        The decoded Record, or the fallback Record if decoding failed
    """
    record = parse_record(safe_json_parse(raw))
    if record is None:
        if logger is not None:
            logger.warning("Undecodable body, storing as raw string", extra={"deliveryId": delivery_id})
        return fallback_record(delivery_id, raw)
    return record
