"""
HTTP routes for record ingress and export.

Every JSON body carries requestId. Failures return the exception message
only; stack traces stay in the logs.
"""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.core.collaborators import Collaborators
from src.core.errors import serialize_error
from src.observability.correlation import get_request_id
from src.observability.logger import ContextLogger
from src.observability.metrics import generate_metrics, get_content_type
from src.utils.validation import ValidationError

router = APIRouter()


def _collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id()


def _request_logger(request: Request, request_id: str) -> ContextLogger:
    return _collaborators(request).logger.child({"requestId": request_id})


def error_response(status_code: int, request_id: str, **fields) -> JSONResponse:
    """Build a failure body with ok=false and the request id."""
    return JSONResponse(status_code=status_code, content={"ok": False, **fields, "requestId": request_id})


@router.post("/records", status_code=202)
async def enqueue_record(request: Request):
    """Accept a record and enqueue it for persistence."""
    request_id = _request_id(request)
    log = _request_logger(request, request_id)
    collaborators = _collaborators(request)

    try:
        raw_body = await request.body()
        payload = await run_in_threadpool(
            collaborators.producer().enqueue, raw_body, request_id, log
        )
    except Exception as e:
        log.error("Failed to enqueue", extra={"error": serialize_error(e)})
        collaborators.metrics.record_error("ingress", e)
        return error_response(500, request_id, error=str(e) or "Unknown error")

    return JSONResponse(
        status_code=202,
        content={"accepted": True, "id": payload["id"], "requestId": request_id},
    )


@router.post("/records/{record_id}/export")
async def export_record(record_id: str, request: Request):
    """Export a stored record to blob storage."""
    request_id = _request_id(request)
    log = _request_logger(request, request_id)
    collaborators = _collaborators(request)

    try:
        result = await run_in_threadpool(collaborators.exporter().export, record_id, log)
    except ValidationError as e:
        return error_response(400, request_id, message=str(e))
    except Exception as e:
        log.error("Export failed", extra={"error": serialize_error(e)})
        collaborators.metrics.record_export("error")
        collaborators.metrics.record_error("export", e)
        return error_response(500, request_id, error=str(e) or "error")

    if not result.found:
        return error_response(404, request_id, message="not found")

    return {"ok": True, "id": result.record_id, "key": result.key, "requestId": request_id}


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/metrics")
async def metrics():
    return Response(content=generate_metrics(), media_type=get_content_type())
