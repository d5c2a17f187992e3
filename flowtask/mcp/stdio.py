"""
MCP over stdio, served by the MCP SDK's low-level server.

The tools are the same MCP_FUNCTIONS table and handlers that back POST /mcp.
Logging goes to stderr, so stdout carries protocol messages only.
"""
import logging
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from flowtask import __version__
from flowtask.dependencies.services import ServiceContainer
from flowtask.exceptions import ServiceError
from flowtask.mcp.handlers.task_handlers import TOOL_HANDLERS, tool_result
from flowtask.mcp.request_handlers import SERVER_NAME, list_tools

logger = logging.getLogger(__name__)


def tool_definitions() -> List[types.Tool]:
    """MCP_FUNCTIONS as SDK tool descriptors."""
    return [
        types.Tool(name=tool["name"], description=tool["description"], inputSchema=tool["inputSchema"])
        for tool in list_tools()
    ]


async def call_tool(
    services: ServiceContainer,
    name: str,
    arguments: Optional[Dict[str, Any]]
) -> types.CallToolResult:
    """
    Run one tool for the stdio server.

    Invalid arguments and Flow failures come back as isError results; the
    structured content names the error type.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        result = tool_result(f"Unknown tool: {name}", is_error=True)
        return types.CallToolResult.model_validate(result)

    try:
        result = await handler(services, arguments or {})
    except ValidationError as e:
        result = tool_result(
            f"Invalid arguments for {name}: {e}",
            structured={"error": {
                "error_type": "ValidationError",
                "errors": e.errors(include_url=False, include_context=False, include_input=False),
            }},
            is_error=True,
        )
    except ServiceError as e:
        logger.warning(f"Tool {name} failed: {e.message}")
        result = tool_result(f"{type(e).__name__}: {e.message}", structured={"error": e.to_dict()}, is_error=True)
    return types.CallToolResult.model_validate(result)


def build_server(services: ServiceContainer) -> Server:
    """Create an SDK server whose tools are bound to one service container."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        return tool_definitions()

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        return await call_tool(services, name, arguments)

    return server


async def serve_stdio(services: ServiceContainer) -> None:
    """Serve MCP requests until stdin is closed."""
    server = build_server(services)
    logger.info("Flow MCP server listening on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("stdin closed, stopping MCP server")
