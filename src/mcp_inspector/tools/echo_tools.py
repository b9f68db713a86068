"""Echo tools for exercising basic tool calls and slow responses."""

import asyncio
import json
import time
from typing import Annotated, Optional

from fastmcp import FastMCP
from pydantic import Field

from ..shared.logger import log_debug


async def echo_message(message: str, delay: int = 0, uppercase: bool = False) -> str:
    if delay > 0:
        await asyncio.sleep(delay / 1000)
    return message.upper() if uppercase else message


async def delay_then_respond(delay: int, message: Optional[str] = None) -> str:
    started = time.monotonic()
    await asyncio.sleep(delay / 1000)
    actual = int((time.monotonic() - started) * 1000)
    return json.dumps({
        "requestedDelay": delay,
        "actualDelay": actual,
        "message": message or "Delay completed",
    }, indent=2)


def register_echo_tools(mcp: FastMCP):
    """Register echo and delay tools.

    Args:
        mcp: FastMCP instance
    """

    @mcp.tool
    async def echo(
        message: Annotated[str, Field(description="Message to echo back")],
        delay: Annotated[int, Field(ge=0, le=10000, description="Delay in milliseconds before responding")] = 0,
        uppercase: Annotated[bool, Field(description="Convert message to uppercase")] = False,
    ) -> str:
        """Echo back the provided message, optionally with a delay or transformation."""
        log_debug("Echo tool called", component="tools", delay=delay, uppercase=uppercase)
        return await echo_message(message, delay, uppercase)

    @mcp.tool
    async def delay_response(
        delay: Annotated[int, Field(ge=0, le=60000, description="Delay duration in milliseconds")],
        message: Annotated[Optional[str], Field(description="Message to return after the delay")] = None,
    ) -> str:
        """Delay the response by a specified duration (for testing timeouts)."""
        log_debug("Delay response tool called", component="tools", delay=delay)
        return await delay_then_respond(delay, message)
