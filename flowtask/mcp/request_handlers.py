"""Request handlers for MCP JSON-RPC requests."""

import logging
from typing import Optional, Dict, Any

from pydantic import ValidationError

from flowtask import __version__
from flowtask.dependencies.services import ServiceContainer
from flowtask.exceptions import ServiceError, to_mcp_error_response
from flowtask.mcp.functions import MCP_FUNCTIONS
from flowtask.mcp.handlers.task_handlers import TOOL_HANDLERS

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "flowtask-mcp-service"

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def list_tools() -> list:
    """Tool descriptors in MCP inputSchema form."""
    tools = []
    for func_def in MCP_FUNCTIONS:
        parameters = func_def.get("parameters", {})
        tools.append({
            "name": func_def["name"],
            "description": func_def["description"],
            "inputSchema": {
                "type": "object",
                "properties": {
                    name: {k: v for k, v in param.items() if k != "optional"}
                    for name, param in parameters.items()
                },
                "required": [k for k, v in parameters.items() if v.get("optional") is not True]
            }
        })
    return tools


def _error(jsonrpc: str, request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": jsonrpc, "id": request_id, "error": error}


def _result(jsonrpc: str, request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": jsonrpc, "id": request_id, "result": result}


async def handle_jsonrpc_request(request: Any, services: ServiceContainer) -> Optional[Dict[str, Any]]:
    """
    Handle a JSON-RPC 2.0 request.

    Args:
        request: Decoded JSON-RPC request
        services: Service container used by tool handlers

    Returns:
        JSON-RPC response dictionary, or None for notifications
    """
    if not isinstance(request, dict) or not isinstance(request.get("method"), str):
        request_id = request.get("id") if isinstance(request, dict) else None
        return _error("2.0", request_id, INVALID_REQUEST, "Invalid request")

    jsonrpc = request.get("jsonrpc", "2.0")
    request_id = request.get("id")
    method = request["method"]
    params = request.get("params") or {}

    if "id" not in request:
        logger.debug(f"Received notification {method}")
        return None

    if method == "initialize":
        return _result(jsonrpc, request_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": SERVER_NAME,
                "version": __version__
            }
        })
    elif method == "ping":
        return _result(jsonrpc, request_id, {})
    elif method == "tools/list":
        return _result(jsonrpc, request_id, {"tools": list_tools()})
    elif method == "prompts/list":
        return _result(jsonrpc, request_id, {"prompts": []})
    elif method == "resources/list":
        return _result(jsonrpc, request_id, {"resources": []})
    elif method == "tools/call":
        return await _call_tool(jsonrpc, request_id, params, services)
    else:
        return _error(jsonrpc, request_id, METHOD_NOT_FOUND, f"Method not found: {method}")


async def _call_tool(
    jsonrpc: str,
    request_id: Any,
    params: Dict[str, Any],
    services: ServiceContainer
) -> Dict[str, Any]:
    tool_name = params.get("name")
    arguments = params.get("arguments") or {}

    handler = TOOL_HANDLERS.get(tool_name)
    if handler is None:
        return _error(jsonrpc, request_id, METHOD_NOT_FOUND, f"Method not found: {tool_name}")

    try:
        result = await handler(services, arguments)
    except ValidationError as e:
        return _error(
            jsonrpc, request_id, INVALID_PARAMS,
            f"Invalid parameters for {tool_name}",
            data=e.errors(include_url=False, include_context=False, include_input=False)
        )
    except ServiceError as e:
        logger.warning(f"Tool {tool_name} failed: {e.message}")
        return {"jsonrpc": jsonrpc, "id": request_id, "error": to_mcp_error_response(e)}
    except Exception as e:
        logger.error(f"Unhandled error in tool {tool_name}: {e}", exc_info=True)
        return _error(
            jsonrpc, request_id, INTERNAL_ERROR,
            f"Internal error: {e}",
            data={"error_type": type(e).__name__}
        )
    return _result(jsonrpc, request_id, result)
