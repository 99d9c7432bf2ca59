"""
ORM Discovery MCP Server

Usage as standalone server:
    python -m orm_discovery.presentation.mcp_server

Or in mcp.json:
    {
        "servers": {
            "orm-discovery": {
                "type": "stdio",
                "command": "orm-discovery-mcp",
                "env": {"OREILLY_USER_ID": "...", "OREILLY_PASSWORD": "..."}
            }
        }
    }

Usage for integration:
    from orm_discovery.presentation.mcp_server import create_server

    server = create_server()
    server.run()
"""

from __future__ import annotations

from .server import create_server, main
from .tools import register_all_tools

__all__ = ["create_server", "main", "register_all_tools"]
