"""MCP server exposing the operation dispatcher over stdio."""

import asyncio
import json
import logging
from typing import Optional

from mcp import Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import TextContent

from . import __version__
from .blog import create_blog_dispatcher
from .descriptions.description_engine import DescriptionEngine
from .dispatcher import Dispatcher
from .tools.operation_tools import OperationTools

logger = logging.getLogger(__name__)

SERVER_NAME = "opdispatch"


class OperationDispatchMCPServer:
    """MCP server wrapping one Dispatcher."""

    def __init__(self, dispatcher: Optional[Dispatcher] = None,
                 engine: Optional[DescriptionEngine] = None):
        """
        Initialize the MCP server.

        Args:
            dispatcher: Dispatcher to expose (default: the blog feature)
            engine: Description engine for listings
        """
        self.dispatcher = dispatcher if dispatcher is not None else create_blog_dispatcher()
        self.operation_tools = OperationTools(self.dispatcher, engine)

        self.server = Server(SERVER_NAME)
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            return self.operation_tools.get_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            result = await self.call_tool(name, arguments)
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def call_tool(self, name: str, arguments: Optional[dict]) -> dict:
        """Route a tool call; failures come back as an error envelope."""
        try:
            return await self.operation_tools.handle_tool(name, arguments or {})
        except Exception as e:
            logger.error(f"Error executing tool {name}: {e}")
            return {
                "ok": False,
                "error": {
                    "message": str(e),
                    "code": "TOOL_EXECUTION_ERROR",
                    "details": {"tool": name, "arguments": arguments},
                },
            }

    async def run(self):
        """Run the MCP server."""
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )


def main():
    """Main entry point for the MCP server."""
    logging.basicConfig(level=logging.INFO)
    server = OperationDispatchMCPServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
