"""Utility tools: date conversion, arithmetic and test data generation."""

import json
import random
from datetime import datetime, timezone
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..shared.logger import log_debug

DateFormat = Literal["iso", "human", "unix", "date-only", "time-only"]
Operation = Literal["add", "subtract", "multiply", "divide", "power", "modulo"]
DataType = Literal["number", "string", "boolean", "array", "object"]


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ToolError(f"Unknown timezone: {name}") from e


def _clock_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment:%M:%S} {suffix}"


def format_date(moment: datetime, fmt: DateFormat, to_timezone: str) -> str:
    """Render an aware datetime in one of the supported formats."""
    if fmt == "unix":
        return str(int(moment.timestamp()))
    if fmt == "iso":
        utc = moment.astimezone(timezone.utc)
        return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"

    local = moment.astimezone(_zone(to_timezone))
    if fmt == "date-only":
        return f"{local.month}/{local.day}/{local.year}"
    if fmt == "time-only":
        return _clock_time(local)
    return f"{local:%A}, {local:%B} {local.day}, {local.year} at {_clock_time(local)} {local.tzname()}"


def convert(date: str, from_timezone: str = "UTC", to_timezone: str = "UTC", fmt: DateFormat = "iso") -> str:
    """Parse an ISO 8601 date and convert it. Naive inputs are read in ``from_timezone``."""
    try:
        moment = datetime.fromisoformat(date.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise ToolError("Invalid date format. Please use ISO 8601 format.") from e
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=_zone(from_timezone))

    return json.dumps({
        "original": date,
        "converted": format_date(moment, fmt, to_timezone),
        "format": fmt,
        "timezone": to_timezone,
    }, indent=2)


def calculate_result(operation: Operation, a: float, b: float) -> str:
    if operation == "add":
        result = a + b
    elif operation == "subtract":
        result = a - b
    elif operation == "multiply":
        result = a * b
    elif operation == "divide":
        if b == 0:
            raise ToolError("Division by zero")
        result = a / b
    elif operation == "power":
        try:
            result = a ** b
        except (OverflowError, ZeroDivisionError) as e:
            raise ToolError(f"Calculation error: {e}") from e
        if isinstance(result, complex):
            raise ToolError("Calculation error: result is not a real number")
    elif operation == "modulo":
        if b == 0:
            raise ToolError("Modulo by zero")
        result = a % b
    else:
        raise ToolError("Invalid operation")

    return json.dumps({"operation": operation, "operands": [a, b], "result": result}, indent=2)


def seeded_random(seed: float) -> Callable[[], float]:
    """Linear congruential generator giving reproducible values in [0, 1)."""
    state = seed

    def next_value() -> float:
        nonlocal state
        state = (state * 9301 + 49297) % 233280
        return state / 233280

    return next_value


def generate_data(data_type: DataType, count: int = 1, seed: Optional[float] = None) -> str:
    rand = seeded_random(seed) if seed is not None else random.random

    data: List[Any]
    if data_type == "number":
        data = [int(rand() * 1000) for _ in range(count)]
    elif data_type == "string":
        data = [f"test_string_{i}_{int(rand() * 36 ** 5):x}" for i in range(count)]
    elif data_type == "boolean":
        data = [rand() > 0.5 for _ in range(count)]
    elif data_type == "array":
        data = [[f"item_{i}_{j}" for j in range(3)] for i in range(count)]
    elif data_type == "object":
        data = [
            {"id": i, "name": f"Object {i}", "value": int(rand() * 100), "active": rand() > 0.5}
            for i in range(count)
        ]
    else:
        raise ToolError("Invalid data type")

    payload: Dict[str, Any] = {"type": data_type, "count": count, "data": data}
    if seed is not None:
        payload["seed"] = seed
    return json.dumps(payload, indent=2)


def register_utility_tools(mcp: FastMCP):
    """Register utility tools.

    Args:
        mcp: FastMCP instance
    """

    @mcp.tool
    async def convert_date(
        date: Annotated[str, Field(description="Date string to convert (ISO 8601 format)")],
        from_timezone: Annotated[str, Field(description="Timezone of a date without offset")] = "UTC",
        to_timezone: Annotated[str, Field(description="Target timezone")] = "UTC",
        format: Annotated[DateFormat, Field(description="Output format")] = "iso",
    ) -> str:
        """Convert dates between timezones and formats."""
        log_debug("Convert date tool called", component="tools", format=format, to_timezone=to_timezone)
        return convert(date, from_timezone, to_timezone, format)

    @mcp.tool
    async def calculate(
        operation: Annotated[Operation, Field(description="Arithmetic operation to perform")],
        a: Annotated[float, Field(description="First operand")],
        b: Annotated[float, Field(description="Second operand")],
    ) -> str:
        """Perform basic arithmetic calculations."""
        log_debug("Calculate tool called", component="tools", operation=operation)
        return calculate_result(operation, a, b)

    @mcp.tool
    async def random_data(
        type: Annotated[DataType, Field(description="Type of random data to generate")],
        count: Annotated[int, Field(ge=1, le=100, description="Number of items to generate")] = 1,
        seed: Annotated[Optional[float], Field(description="Random seed for reproducible results")] = None,
    ) -> str:
        """Generate random test data."""
        log_debug("Random data tool called", component="tools", data_type=type, count=count)
        return generate_data(type, count, seed)
