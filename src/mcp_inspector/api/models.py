"""API response models."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="healthy, or degraded when Redis is unreachable")
    redis: str = Field(..., description="healthy or unavailable")
    observers: int = Field(..., description="Open console connections")
    sessions: int = Field(..., description="Connected MCP client sessions")
    version: str


class StatsResponse(BaseModel):
    """Operator statistics for the relay."""
    messages: Dict[str, int] = Field(..., description="Message store totals")
    observers: Dict[str, Any] = Field(..., description="Observer hub status")
    sessions: int
    retention: Dict[str, Any] = Field(..., description="Retention worker counters and queue depth")
