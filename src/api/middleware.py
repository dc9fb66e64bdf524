"""
FastAPI middleware that resolves the correlation id of every request.

Resolution order: x-correlation-id header, then x-request-id (set by
gateways and load balancers), then a generated UUID. The id is stored on
request.state and in a contextvar, and echoed as x-correlation-id on
every response.
"""

from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.observability.correlation import (
    CORRELATION_HEADER,
    reset_request_id,
    resolve_request_id,
    set_request_id,
)

TRANSPORT_ID_HEADER = "x-request-id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Ensures every request and response carries a correlation id."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(
            request.headers,
            transport_id=request.headers.get(TRANSPORT_ID_HEADER),
        )
        request.state.request_id = request_id

        token = set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers[CORRELATION_HEADER] = request_id
        return response
