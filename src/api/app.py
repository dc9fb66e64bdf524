"""
FastAPI application factory for the ingress and export endpoints.

Usage:
    collaborators = build_collaborators(load_settings(), function_name="api")
    app = create_app(collaborators)
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.collaborators import Collaborators
from src.core.errors import serialize_error
from src.observability.correlation import generate_request_id, with_correlation_headers

from .middleware import CorrelationMiddleware
from .routes import router


def create_app(collaborators: Collaborators, close_on_shutdown: bool = False) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        collaborators: Process-wide handles used by the routes
        close_on_shutdown: Close the collaborators when the app shuts down

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if close_on_shutdown:
            collaborators.close()

    app = FastAPI(
        title="Record Pipeline",
        version=collaborators.settings.service_version,
        lifespan=lifespan,
    )
    app.state.collaborators = collaborators
    app.add_middleware(CorrelationMiddleware)
    app.include_router(router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None) or generate_request_id()
        collaborators.logger.child({"requestId": request_id}).error(
            "Unhandled request failure", extra={"error": serialize_error(exc)}
        )
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": str(exc) or "error", "requestId": request_id},
            headers=with_correlation_headers(None, request_id),
        )

    return app
