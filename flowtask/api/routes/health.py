"""
Health and metrics API routes.
"""
from prometheus_client import CONTENT_TYPE_LATEST

from flowtask.adapters.http_framework import HTTPFrameworkAdapter
from flowtask.monitoring import get_health_info, get_metrics

# Initialize adapter
http_adapter = HTTPFrameworkAdapter()
Request = http_adapter.Request
Response = http_adapter.Response
JSONResponse = http_adapter.JSONResponse

router_adapter = http_adapter.create_router(tags=["health"])
router = router_adapter.router


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint with service and Flow configuration status."""
    services = getattr(request.app.state, "services", None)
    health_info = get_health_info(services.settings if services else None)

    if health_info.get("status") == "unhealthy":
        return JSONResponse(content=health_info, status_code=503)
    return health_info


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
