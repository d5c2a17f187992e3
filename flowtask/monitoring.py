"""
Monitoring and observability utilities for the flowtask service.

Provides:
- Prometheus metrics (HTTP requests, upstream Flow calls, degraded fetches)
- Request tracing (unique request IDs)
- Health information
"""
import re
import time
import uuid
import logging
from typing import Callable, Dict, Any
from contextvars import ContextVar

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, Gauge, generate_latest

# Request context variable for tracing
request_id_var: ContextVar[str] = ContextVar('request_id', default='')

# Prometheus metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

flow_api_requests_total = Counter(
    'flow_api_requests_total',
    'Total number of calls to the Flow API',
    ['endpoint', 'outcome']
)

flow_api_request_duration_seconds = Histogram(
    'flow_api_request_duration_seconds',
    'Flow API call duration in seconds',
    ['endpoint'],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)
)

flow_degraded_fetches_total = Counter(
    'flow_degraded_fetches_total',
    'Secondary fetches that failed and were absorbed by the pipeline',
    ['stage']
)

service_uptime_seconds = Gauge(
    'service_uptime_seconds',
    'Service uptime in seconds'
)

service_start_time = time.time()

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get('')


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_var.set(request_id)


def new_request_id() -> str:
    """Generate and set a fresh request ID."""
    request_id = str(uuid.uuid4())[:8]
    set_request_id(request_id)
    return request_id


def record_flow_call(endpoint: str, outcome: str, duration: float) -> None:
    """Record one Flow API call."""
    flow_api_requests_total.labels(endpoint=_endpoint_label(endpoint), outcome=outcome).inc()
    flow_api_request_duration_seconds.labels(endpoint=_endpoint_label(endpoint)).observe(duration)


def record_degraded_fetch(stage: str) -> None:
    """Record a secondary fetch failure that the pipeline recovered from."""
    flow_degraded_fetches_total.labels(stage=stage).inc()


def _endpoint_label(endpoint: str) -> str:
    # Query strings only carry the mode, which the path already implies
    return endpoint.split('?', 1)[0]


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for collecting Prometheus metrics and request tracing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        set_request_id(request_id)

        endpoint = self._get_endpoint_path(request.url.path)
        start_time = time.time()
        service_uptime_seconds.set(time.time() - service_start_time)

        try:
            response = await call_next(request)
        except Exception:
            duration = time.time() - start_time
            logger.error(
                f"Request failed with exception: {request.method} {request.url.path}",
                exc_info=True,
                extra={"request_id": request_id, "duration_seconds": duration}
            )
            http_requests_total.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            ).inc()
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=status_code
        ).inc()
        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=status_code
        ).observe(duration)

        log = logger.warning if status_code >= 400 else logger.info
        log(
            f"{request.method} {request.url.path} -> {status_code} ({duration:.3f}s)",
            extra={"request_id": request_id}
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Trace-ID"] = request_id
        return response

    @staticmethod
    def _get_endpoint_path(path: str) -> str:
        """Normalize endpoint path for metrics (task numbers become placeholders)."""
        path = re.sub(r'/tasks/[^/]+', '/tasks/{task_number}', path)
        if len(path) > 100:
            path = path[:100]
        return path


def get_metrics() -> str:
    """Get Prometheus metrics in text format."""
    return generate_latest().decode('utf-8')


def get_health_info(settings=None) -> Dict[str, Any]:
    """
    Get health information including uptime and upstream configuration.

    Args:
        settings: Optional FlowSettings of the running service

    Returns:
        Dictionary with health information including component statuses
    """
    uptime = time.time() - service_start_time
    components: Dict[str, Any] = {
        "service": {
            "status": "healthy",
            "uptime_seconds": uptime,
            "uptime_formatted": _format_uptime(uptime)
        }
    }
    overall_status = "healthy"

    if settings is None:
        components["flow"] = {"status": "unconfigured"}
        overall_status = "unhealthy"
    else:
        components["flow"] = {
            "status": "configured",
            "base_url": settings.base_url,
            "enrichment_strategy": settings.enrichment_strategy.value,
            "deleted_remarks": settings.effective_deleted_remarks.value,
        }

    return {
        "status": overall_status,
        "service": "flowtask-service",
        "timestamp": time.time(),
        "uptime_seconds": uptime,
        "uptime_formatted": _format_uptime(uptime),
        "components": components
    }


def _format_uptime(seconds: float) -> str:
    """Format uptime in human-readable format."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    elif hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"
