"""FastMCP server and tool definitions for owner resolution and labeling."""

from pr_triage.mcp.server import (
    create_server,
    get_classifier,
    get_config,
    get_server,
    reset_server,
)

__all__ = [
    "create_server",
    "get_classifier",
    "get_config",
    "get_server",
    "reset_server",
]
