"""
Sleeper MCP Server Package

A FastMCP server giving tool-calling clients cached, read-only access to the
Sleeper fantasy sports API, with player ids resolved against the full player
directory.
"""

from .server import create_app, main

__version__ = "0.2.0"
__all__ = ["create_app", "main"]
