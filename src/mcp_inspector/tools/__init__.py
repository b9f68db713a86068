"""Test tools exposed by the inspector's MCP server."""

from fastmcp import FastMCP

from .echo_tools import register_echo_tools
from .error_tools import register_error_tools
from .utility_tools import register_utility_tools

TOOL_DESCRIPTIONS = {
    "echo": "Echo a message, optionally delayed or uppercased",
    "delay_response": "Respond after a fixed delay (timeout testing)",
    "convert_date": "Convert a date between timezones and formats",
    "calculate": "Basic arithmetic",
    "random_data": "Generate random or seeded test data",
    "trigger_error": "Raise a chosen kind of tool error",
}


def register_all_tools(mcp: FastMCP):
    register_echo_tools(mcp)
    register_utility_tools(mcp)
    register_error_tools(mcp)


__all__ = ["TOOL_DESCRIPTIONS", "register_all_tools"]
