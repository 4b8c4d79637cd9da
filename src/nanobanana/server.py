from __future__ import annotations

import logging
from typing import Any

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from nanobanana.tools import SERVER_NAME, ToolRouter

logger = logging.getLogger(__name__)


def create_server(router: ToolRouter) -> Server:
    """Expose the router's tools over the Model Context Protocol."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in router.list_tools()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        # ToolExecutionError propagates; the SDK reports it as an isError result.
        text = await router.call_tool(name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


async def run_stdio(router: ToolRouter) -> None:
    server = create_server(router)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Nano Banana MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())
