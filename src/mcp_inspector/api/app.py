"""FastAPI application: console WebSocket, health and stats routes.

When an MCP server is supplied its streamable HTTP app is mounted at the
root, so the protocol endpoint is ``/mcp`` next to ``/ws/console``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..context import InspectorContext
from ..server import InspectorMCPServer
from .models import HealthStatus, StatsResponse

logger = logging.getLogger(__name__)

CONSOLE_PATH = "/ws/console"
MCP_PATH = "/mcp"


def create_app(context: InspectorContext, mcp_server: Optional[InspectorMCPServer] = None) -> FastAPI:
    """Create the FastAPI application."""

    mcp_app = mcp_server.http_app(path=MCP_PATH) if mcp_server is not None else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info("Inspector app starting...")
        if mcp_app is not None:
            async with mcp_app.lifespan(app):
                await context.start()
                try:
                    yield
                finally:
                    await context.shutdown()
        else:
            await context.start()
            try:
                yield
            finally:
                await context.shutdown()
        logger.info("Inspector app stopped")

    app = FastAPI(
        title="MCP Client Inspector",
        description="Live relay of MCP client traffic to a browser console",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.websocket(CONSOLE_PATH)
    async def console_socket(websocket: WebSocket):
        """Observer connection: greet, then feed every frame to the dispatcher."""
        inspector: InspectorContext = websocket.app.state.context
        connection_id = await inspector.hub.accept(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.debug(f"Console connection {connection_id} closed")
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                inspector.dispatcher.submit(connection_id, raw)
        except Exception as e:
            logger.error(f"Console connection {connection_id} failed: {e}")
        finally:
            await inspector.hub.remove(connection_id)

    @app.get("/health", response_model=HealthStatus)
    async def health_check(request: Request):
        """Health check endpoint."""
        inspector: InspectorContext = request.app.state.context
        health = await inspector.health()
        return HealthStatus(
            status="healthy" if health["redis"] else "degraded",
            redis="healthy" if health["redis"] else "unavailable",
            observers=health["observers"],
            sessions=health["sessions"],
            version=__version__,
        )

    @app.get("/api/stats", response_model=StatsResponse)
    async def stats(request: Request):
        """Message store totals plus hub and retention status."""
        inspector: InspectorContext = request.app.state.context
        retention = inspector.store.retention
        return StatsResponse(
            messages=await inspector.store.get_statistics(),
            observers=inspector.hub.status(),
            sessions=len(inspector.registry),
            retention={**retention.stats, "queueDepth": retention.queue_depth, "running": retention.running},
        )

    if mcp_app is not None:
        app.mount("/", mcp_app)

    return app
