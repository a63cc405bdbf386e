#!/usr/bin/env python3
"""
Sleeper MCP Server

A FastMCP server that provides:
- Health endpoint (non-MCP REST endpoint) with result-cache statistics
- Sleeper API tools for users, leagues, rosters, matchups, transactions,
  drafts, trending players and season state, with player ids resolved
  against the cached player directory
- Player directory tools (lookup, search, position/team listings, refresh)
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, UTC

from fastmcp import FastMCP
from starlette.responses import JSONResponse

from . import tool_registry
from .config_manager import get_config_manager
from .errors import SleeperMCPError
from .logging_config import setup_logging
from .metrics import get_metrics_collector
from .service import SleeperService

logger = logging.getLogger(__name__)

WARM_DIRECTORY = os.getenv("SLEEPER_MCP_WARM_DIRECTORY") == "1"


def create_app(service: SleeperService = None) -> FastMCP:
    """Create and configure the FastMCP server application."""
    config = get_config_manager().config

    mcp = FastMCP(name="Sleeper MCP Server")

    if service is None:
        service = SleeperService.from_config(config)
    tool_registry.initialize_shared(service)

    for tool_func in tool_registry.get_all_tools():
        mcp.tool(tool_func)

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request):
        """Health check endpoint for monitoring server status."""
        metrics = get_metrics_collector()
        return JSONResponse({
            "status": "healthy",
            "service": "Sleeper MCP Server",
            "version": config.server.version,
            "timestamp": datetime.now(UTC).isoformat(),
            "cache": service.router.stats(),
            "hit_ratio": {
                "result_cache": metrics.hit_ratio("result_cache"),
                "reference_cache": metrics.hit_ratio("reference_cache"),
            },
            "counters": metrics.get_metrics()["counters"],
        })

    return mcp


def create_lifespan(service: SleeperService, domain: str):
    """Factory for the startup hook that optionally warms the player directory."""
    @asynccontextmanager
    async def app_lifespan(app):
        if WARM_DIRECTORY:
            try:
                directory = await service.router.load_directory(domain)
                logger.info(f"Player directory warmed for {domain}: {len(directory)} players")
            except SleeperMCPError as e:
                # Server still starts; directory tools will retry on first use
                logger.warning(f"Player directory warm-up failed: {e.message}")
        yield

    return app_lifespan


def main():
    """Main entry point for the server."""
    config_manager = get_config_manager()
    config = config_manager.config
    setup_logging(
        log_level=os.getenv("SLEEPER_MCP_LOG_LEVEL", "INFO"),
        version=config.server.version,
        enable_file_logging=os.getenv("SLEEPER_MCP_LOG_FILE") is not None,
        log_file_path=os.getenv("SLEEPER_MCP_LOG_FILE"),
    )

    app = create_app()
    service = tool_registry.get_service()
    if service is None:
        raise RuntimeError("SleeperService not initialized in tool_registry")

    app_lifespan_fn = create_lifespan(service, config.reference.default_domain)

    # Get MCP HTTP app with /mcp path prefix
    mcp_http = app.http_app(path="/mcp")

    # Save original MCP lifespan BEFORE replacing it
    original_mcp_lifespan = mcp_http.router.lifespan_context

    @asynccontextmanager
    async def combined_lifespan(app_instance):
        async with app_lifespan_fn(app_instance):
            async with original_mcp_lifespan(app_instance):
                yield

    mcp_http.router.lifespan_context = combined_lifespan

    import uvicorn
    try:
        uvicorn.run(mcp_http, host=config.server.host, port=config.server.port)
    finally:
        config_manager.stop()


if __name__ == "__main__":
    main()
