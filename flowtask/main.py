"""
Flow Task Service - entry point.

Runs either the HTTP service (REST + MCP over POST /mcp) or the MCP server on
stdio. All application wiring is in app/factory.py.
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, List

import uvicorn

from flowtask.app.factory import create_app, setup_logging
from flowtask.config import FlowSettings
from flowtask.dependencies.services import ServiceContainer
from flowtask.exceptions import ConfigurationError
from flowtask.mcp.stdio import serve_stdio

logger = logging.getLogger(__name__)


async def run_stdio(settings: FlowSettings) -> None:
    """Serve MCP on stdio with one service container for the process lifetime."""
    services = ServiceContainer(settings)
    try:
        await serve_stdio(services)
    finally:
        await services.aclose()


def run_http(settings: FlowSettings, port: Optional[int] = None) -> None:
    app = create_app(settings=settings)
    config = uvicorn.Config(
        app,
        host=os.getenv("FLOW_SERVICE_HOST", "0.0.0.0"),
        port=port or settings.service_port,
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
        access_log=True,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        # Cleanup is handled by the lifespan context manager in app/factory.py
        logger.info("Service stopped")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="flowtask-service", description="Flow task retrieval service")
    parser.add_argument("--stdio", action="store_true", help="serve MCP over stdin/stdout instead of HTTP")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (overrides FLOW_SERVICE_PORT)")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        settings = FlowSettings.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        return 1

    if args.stdio:
        try:
            asyncio.run(run_stdio(settings))
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
    else:
        run_http(settings, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
