"""
Application factory - creates and configures the FastAPI application.
This isolates all initialization logic from main.py.
"""
import os
import sys
import logging
from contextlib import asynccontextmanager
from typing import Optional

from flowtask import __version__
from flowtask.adapters.http_framework import HTTPFrameworkAdapter
from flowtask.api.routes.health import router as health_router
from flowtask.api.routes.mcp import router as mcp_router
from flowtask.api.routes.tasks import router as tasks_router
from flowtask.config import FlowSettings
from flowtask.dependencies.services import ServiceContainer
from flowtask.exceptions import ServiceError, to_http_exception
from flowtask.monitoring import MetricsMiddleware, get_request_id
from flowtask.tracing import tracing_enabled, setup_tracing, instrument_fastapi, instrument_httpx

# Initialize HTTP framework adapter
http_adapter = HTTPFrameworkAdapter()
Request = http_adapter.Request
JSONResponse = http_adapter.JSONResponse

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'


class RequestIDFilter(logging.Filter):
    """Filter to add request ID to log records."""

    def filter(self, record):
        # Always set request_id to avoid KeyError in format string
        record.request_id = get_request_id() or '-'
        return True


class SafeFormatter(logging.Formatter):
    """Formatter that tolerates records without a request_id."""

    def format(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = '-'
        return super().format(record)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Setup structured logging with request ID support.

    Logs always go to stderr; stdout is reserved for the stdio MCP channel.
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(SafeFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[handler],
        force=True
    )


@asynccontextmanager
async def lifespan(app):
    """Build the service container on startup and close its clients on shutdown."""
    logger = logging.getLogger(__name__)
    logger.info("Application starting up...")

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        settings = app.state.settings or FlowSettings.from_env()
        app.state.services = ServiceContainer(settings)

    yield

    logger.info("Application shutting down...")
    if owns_services:
        await app.state.services.aclose()
        app.state.services = None
    logger.info("Shutdown complete")


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Convert service errors into JSON error responses."""
    logger = logging.getLogger(__name__)
    request_id = get_request_id() or '-'
    if exc.request_id is None and request_id != '-':
        exc.request_id = request_id
    http_exc = to_http_exception(exc)
    log = logger.info if http_exc.status_code == 404 else logger.error
    log(f"{type(exc).__name__} in {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=http_exc.status_code, content={"error": http_exc.detail})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with consistent error format."""
    logger = logging.getLogger(__name__)
    request_id = get_request_id() or '-'
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please check the logs for details.",
            "path": request.url.path,
            "method": request.method,
            "request_id": request_id
        }
    )


def create_app(
    settings: Optional[FlowSettings] = None,
    services: Optional[ServiceContainer] = None
):
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build services from on startup (read from the
            environment when omitted)
        services: Prebuilt service container; when given, the lifespan
            neither builds nor closes one

    Returns:
        Configured FastAPI app instance ready to run
    """
    app_adapter = http_adapter.create_app(
        title="Flow Task Service",
        description="Normalized Flow task retrieval over REST and MCP",
        version=__version__,
        lifespan=lifespan
    )
    app = app_adapter.app
    app.state.settings = settings
    app.state.services = services

    app_adapter.add_middleware(MetricsMiddleware)
    app_adapter.exception_handler(ServiceError)(service_error_handler)
    app_adapter.exception_handler(Exception)(global_exception_handler)

    app_adapter.include_router(health_router)
    app_adapter.include_router(tasks_router)
    app_adapter.include_router(mcp_router)

    if tracing_enabled():
        setup_tracing()
        instrument_fastapi(app)
        instrument_httpx()

    return app
