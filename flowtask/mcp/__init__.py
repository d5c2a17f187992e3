"""MCP command layer: tool definitions, handlers and JSON-RPC dispatch."""
