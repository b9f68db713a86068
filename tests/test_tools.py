"""Test tool behaviour, exercised through the plain helper functions."""

import asyncio
import json

import pytest
from fastmcp.exceptions import ToolError

from mcp_inspector.server import create_server
from mcp_inspector.tools import TOOL_DESCRIPTIONS
from mcp_inspector.tools.echo_tools import delay_then_respond, echo_message
from mcp_inspector.tools.error_tools import raise_error
from mcp_inspector.tools.utility_tools import calculate_result, convert, generate_data, seeded_random

NOON_UTC = "2024-01-15T12:00:00Z"


class TestEcho:

    @pytest.mark.asyncio
    async def test_echo_verbatim(self):
        assert await echo_message("Hello") == "Hello"

    @pytest.mark.asyncio
    async def test_echo_uppercase(self):
        assert await echo_message("Hello", uppercase=True) == "HELLO"

    @pytest.mark.asyncio
    async def test_delay_reports_timing(self):
        result = json.loads(await delay_then_respond(10))
        assert result["requestedDelay"] == 10
        assert result["actualDelay"] >= 0
        assert result["message"] == "Delay completed"


class TestConvertDate:

    @pytest.mark.parametrize("fmt,expected", [
        ("iso", "2024-01-15T12:00:00.000Z"),
        ("unix", "1705320000"),
        ("date-only", "1/15/2024"),
        ("time-only", "7:00:00 AM"),
        ("human", "Monday, January 15, 2024 at 7:00:00 AM EST"),
    ])
    def test_formats(self, fmt, expected):
        result = json.loads(convert(NOON_UTC, to_timezone="America/New_York", fmt=fmt))
        assert result["converted"] == expected
        assert result["original"] == NOON_UTC
        assert result["timezone"] == "America/New_York"

    def test_naive_input_uses_source_timezone(self):
        result = json.loads(convert("2024-01-15T07:00:00", from_timezone="America/New_York", fmt="iso"))
        assert result["converted"] == "2024-01-15T12:00:00.000Z"

    def test_invalid_date(self):
        with pytest.raises(ToolError, match="ISO 8601"):
            convert("not a date")

    def test_unknown_timezone(self):
        with pytest.raises(ToolError, match="Unknown timezone"):
            convert(NOON_UTC, to_timezone="Mars/Olympus", fmt="human")


class TestCalculate:

    @pytest.mark.parametrize("operation,a,b,expected", [
        ("add", 2, 3, 5),
        ("subtract", 2, 3, -1),
        ("multiply", 4, 2.5, 10),
        ("divide", 7, 2, 3.5),
        ("power", 2, 10, 1024),
        ("modulo", 7, 3, 1),
    ])
    def test_operations(self, operation, a, b, expected):
        result = json.loads(calculate_result(operation, a, b))
        assert result == {"operation": operation, "operands": [a, b], "result": expected}

    @pytest.mark.parametrize("operation", ["divide", "modulo"])
    def test_zero_divisor(self, operation):
        with pytest.raises(ToolError, match="by zero"):
            calculate_result(operation, 1, 0)

    def test_complex_power_rejected(self):
        with pytest.raises(ToolError, match="not a real number"):
            calculate_result("power", -8.0, 0.5)

    def test_overflow_reported(self):
        with pytest.raises(ToolError, match="Calculation error"):
            calculate_result("power", 10.0, 1000.0)


class TestRandomData:

    def test_seed_is_reproducible(self):
        assert generate_data("object", 5, seed=42) == generate_data("object", 5, seed=42)

    def test_seeded_generator_range(self):
        rand = seeded_random(7)
        values = [rand() for _ in range(50)]
        assert all(0 <= value < 1 for value in values)

    @pytest.mark.parametrize("data_type", ["number", "string", "boolean", "array", "object"])
    def test_count_and_shape(self, data_type):
        result = json.loads(generate_data(data_type, 4))
        assert result["type"] == data_type
        assert result["count"] == 4
        assert len(result["data"]) == 4
        assert "seed" not in result

    def test_seed_echoed(self):
        assert json.loads(generate_data("number", 1, seed=3))["seed"] == 3


class TestTriggerError:

    @pytest.mark.asyncio
    async def test_validation(self):
        with pytest.raises(ToolError, match="Validation Error: bad input"):
            await raise_error("validation", "bad input")

    @pytest.mark.asyncio
    async def test_runtime(self):
        with pytest.raises(RuntimeError, match="Runtime Error: Triggered runtime error"):
            await raise_error("runtime")

    @pytest.mark.asyncio
    async def test_custom(self):
        with pytest.raises(ToolError, match="^teapot$"):
            await raise_error("custom", "teapot")

    @pytest.mark.asyncio
    async def test_timeout_never_returns(self):
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(raise_error("timeout"), timeout=0.05)


class TestRegistration:

    @pytest.mark.asyncio
    async def test_server_exposes_every_tool(self, test_config, redis_clients):
        from mcp_inspector.context import InspectorContext

        server = create_server(InspectorContext(config=test_config, redis_clients=redis_clients))

        tools = await server.mcp.get_tools()
        assert set(tools) == set(TOOL_DESCRIPTIONS)
