"""
MCP (Model Context Protocol) API routes.
"""
from typing import Any

from flowtask.adapters.http_framework import HTTPFrameworkAdapter
from flowtask.dependencies.services import ServiceContainer, get_services
from flowtask.mcp.functions import MCP_FUNCTIONS
from flowtask.mcp.request_handlers import handle_jsonrpc_request

# Initialize adapter
http_adapter = HTTPFrameworkAdapter()
Body = http_adapter.Body
Depends = http_adapter.Depends
Response = http_adapter.Response

router_adapter = http_adapter.create_router(prefix="/mcp", tags=["mcp"])
router = router_adapter.router


@router.get("/functions")
async def mcp_functions():
    """List all available MCP functions."""
    return {"functions": MCP_FUNCTIONS}


@router.post("")
async def mcp_jsonrpc(
    request: Any = Body(...),
    services: ServiceContainer = Depends(get_services)
):
    """Generic JSON-RPC 2.0 endpoint for MCP."""
    result = await handle_jsonrpc_request(request, services)
    if result is None:
        # Notifications get no response body
        return Response(status_code=202)
    return result
