"""Shared utilities for the MCP client inspector."""
