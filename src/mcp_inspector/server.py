"""MCP server exposing the inspector test tools, wired to the relay."""

import logging
from fastmcp import FastMCP

from . import __version__
from .context import InspectorContext
from .middleware import TrafficMiddleware
from .tools import register_all_tools

logger = logging.getLogger(__name__)


class InspectorMCPServer:
    """FastMCP server whose traffic is recorded and relayed to observers."""

    SERVER_NAME = "mcp-client-inspector"
    SERVER_VERSION = __version__

    def __init__(self, context: InspectorContext, debug: bool = False):
        """Initialize the server.

        Args:
            context: Relay components shared with the console app
            debug: Enable debug logging
        """
        self.context = context
        self.debug = debug
        self.mcp = FastMCP(
            name=self.SERVER_NAME,
            version=self.SERVER_VERSION,
            instructions="""An MCP server for exercising MCP clients.

Every request and response is recorded and streamed to the inspector console,
where an operator can also send notifications, sampling requests and
elicitation requests back to connected clients.

Tools: echo, delay_response, convert_date, calculate, random_data, trigger_error"""
        )
        self.mcp.add_middleware(TrafficMiddleware(context))
        register_all_tools(self.mcp)

        if debug:
            logger.info("MCP inspector server initialized")

    def http_app(self, path: str = "/mcp"):
        """Streamable HTTP ASGI app for the protocol endpoint."""
        return self.mcp.http_app(path=path)

    async def run_stdio(self, show_banner: bool = False):
        logger.info("Starting %s on stdio", self.SERVER_NAME)
        await self.mcp.run_async(transport="stdio", show_banner=show_banner)


def create_server(context: InspectorContext, debug: bool = False) -> InspectorMCPServer:
    """Factory function to create an inspector MCP server.

    Args:
        context: Relay components
        debug: Enable debug logging

    Returns:
        InspectorMCPServer instance
    """
    return InspectorMCPServer(context, debug=debug)
