"""
Correlation id resolution and propagation.

A correlation id (exposed as requestId) is threaded through ingress,
queue attributes, log lines and HTTP responses. It is never used for
identity or routing.
"""

import contextvars
import uuid
from typing import Mapping

CORRELATION_HEADER = "x-correlation-id"

_request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


def generate_request_id() -> str:
    """Generate a fresh random (UUID4) correlation id."""
    return str(uuid.uuid4())


def _header_value(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; HTTP header names are not
        lowered = name.lower()
        for key, candidate in headers.items():
            if isinstance(key, str) and key.lower() == lowered:
                value = candidate
                break
    if isinstance(value, str):
        value = value.strip()
    return value or None


def resolve_request_id(
    headers: Mapping[str, str] | None = None,
    transport_id: str | None = None,
    fallback_id: str | None = None,
) -> str:
    """
    Resolve the correlation id for an inbound request.

    Precedence: explicit x-correlation-id header, then the transport/request
    id, then the fallback (invocation) id, then a freshly generated id.
    Empty values count as absent.

    Args:
        headers: Inbound headers
        transport_id: Id assigned by the transport or gateway
        fallback_id: Id of the current invocation

    Returns:
        Correlation id
    """
    return (
        _header_value(headers, CORRELATION_HEADER)
        or transport_id
        or fallback_id
        or generate_request_id()
    )


def with_correlation_headers(headers: Mapping[str, str] | None, request_id: str) -> dict[str, str]:
    """Copy headers and set the correlation header."""
    return {**(headers or {}), CORRELATION_HEADER: request_id}


def get_request_id() -> str:
    """Get the current request id from context."""
    return _request_id_ctx.get()


def set_request_id(request_id: str) -> contextvars.Token[str]:
    """Set the request id in context. Returns token for reset."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token[str]) -> None:
    """Reset the request id context to previous value."""
    _request_id_ctx.reset(token)
