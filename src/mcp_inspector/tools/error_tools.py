"""Tool that fails on demand, for testing client error handling."""

import asyncio
from typing import Annotated, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..shared.logger import log_debug, log_warning

ErrorType = Literal["validation", "runtime", "timeout", "custom"]


async def raise_error(error_type: ErrorType, message: Optional[str] = None, delay: int = 0) -> str:
    """Fail the way ``error_type`` asks for.

    validation and custom produce tool-level errors, runtime raises an
    unexpected exception, and timeout never returns.
    """
    if delay > 0:
        await asyncio.sleep(delay / 1000)

    text = message or f"Triggered {error_type} error"
    if error_type == "validation":
        raise ToolError(f"Validation Error: {text}")
    if error_type == "runtime":
        raise RuntimeError(f"Runtime Error: {text}")
    if error_type == "timeout":
        log_warning("Timeout error triggered, waiting indefinitely", component="tools")
        await asyncio.Event().wait()
    if error_type == "custom":
        raise ToolError(text)
    return "Error not triggered"


def register_error_tools(mcp: FastMCP):
    """Register the error trigger tool.

    Args:
        mcp: FastMCP instance
    """

    @mcp.tool
    async def trigger_error(
        error_type: Annotated[ErrorType, Field(description="Type of error to trigger")],
        message: Annotated[Optional[str], Field(description="Custom error message")] = None,
        delay: Annotated[int, Field(ge=0, le=5000, description="Delay before failing, in milliseconds")] = 0,
    ) -> str:
        """Intentionally trigger an error for testing error handling."""
        log_debug("Trigger error tool called", component="tools", error_type=error_type, delay=delay)
        return await raise_error(error_type, message, delay)
