"""MCP Client Inspector - relays MCP client traffic to a live browser console."""

__version__ = "1.0.0"

__all__ = ["__version__"]
