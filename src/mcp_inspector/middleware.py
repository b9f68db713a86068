"""FastMCP middleware that feeds protocol traffic into the relay.

For every message from a client the middleware registers or touches the
calling session, records the incoming request, runs the handler, and records
the outgoing result or error.
"""

from typing import Any, Dict, Optional, Tuple

import pydantic_core
from fastmcp.server.dependencies import get_http_request
from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext

from .console.models import Direction, TransportKind
from .context import InspectorContext
from .shared.logger import log_trace

DEFAULT_SESSION_ID = "default"


def to_jsonable(value: Any) -> Any:
    """Best-effort JSON form of protocol objects for recording."""
    if hasattr(value, "to_mcp_result"):
        value = value.to_mcp_result()
    return pydantic_core.to_jsonable_python(value, by_alias=True, exclude_none=True, fallback=repr)


def detect_transport() -> TransportKind:
    try:
        get_http_request()
    except RuntimeError:
        return TransportKind.STDIO
    return TransportKind.HTTP


def client_details(session: Any) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Client name/version and protocol version from the initialize params."""
    params = getattr(session, "client_params", None)
    if params is None:
        return None, None
    client_info = to_jsonable(params.clientInfo) if params.clientInfo else None
    return client_info, params.protocolVersion


class TrafficMiddleware(Middleware):
    """Records MCP traffic per session and keeps the session registry current."""

    def __init__(self, inspector: InspectorContext):
        super().__init__()
        self.inspector = inspector

    async def on_message(self, context: MiddlewareContext, call_next: CallNext):
        session_id = await self._track_session(context)
        method = context.method

        await self.inspector.record_traffic(session_id, Direction.INCOMING, {
            "method": method,
            "params": to_jsonable(context.message),
        })

        try:
            result = await call_next(context)
        except Exception as e:
            await self.inspector.record_traffic(session_id, Direction.OUTGOING, {
                "method": method,
                "error": {"type": type(e).__name__, "message": str(e)},
            })
            raise

        if context.type == "request":
            await self.inspector.record_traffic(session_id, Direction.OUTGOING, {
                "method": method,
                "result": to_jsonable(result),
            })
        return result

    async def _track_session(self, context: MiddlewareContext) -> str:
        fastmcp_context = context.fastmcp_context
        if fastmcp_context is None:
            return DEFAULT_SESSION_ID

        try:
            session = fastmcp_context.session
            session_id = getattr(fastmcp_context, "session_id", None)
        except (RuntimeError, ValueError) as e:
            log_trace("No session for message", component="middleware", method=context.method, error=str(e))
            return DEFAULT_SESSION_ID
        if not session_id:
            session_id = f"session-{id(session):x}"

        registry = self.inspector.registry
        if session_id not in registry:
            client_info, protocol_version = client_details(session)
            await registry.register(
                session_id,
                detect_transport(),
                handle=session,
                protocol_version=protocol_version,
                client_info=client_info,
            )

        meta = getattr(context.message, "meta", None)
        await registry.touch(session_id, to_jsonable(meta) if meta is not None else None)
        return session_id
