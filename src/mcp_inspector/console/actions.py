"""Actions the console can trigger on connected MCP clients.

``ClientActions`` is the seam the dispatcher depends on; ``McpClientActions``
implements it against the ``ServerSession`` handles kept by the registry.
"""

import asyncio
from typing import Any, Dict, List, Optional, Protocol, Tuple

import anyio
from mcp import types

from ..exceptions import NoActiveSessionError, SessionNotFoundError
from ..sessions.registry import SessionRegistry
from ..shared.logger import log_debug, log_info, log_warning
from .commands import ElicitationPayload, ImageContent, NotificationPayload, SamplingPayload
from .models import Session

# Raised by a session whose transport streams are already closed
CLOSED_STREAM_ERRORS = (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.EndOfStream)


class ClientActions(Protocol):
    async def send_notification(self, params: NotificationPayload, session_id: Optional[str] = None) -> None:
        ...

    async def create_message(self, request: SamplingPayload, session_id: Optional[str] = None) -> Dict[str, Any]:
        ...

    async def elicit_input(self, request: ElicitationPayload, session_id: Optional[str] = None) -> Dict[str, Any]:
        ...

    async def get_sessions(self) -> List[Session]:
        ...


def _to_sampling_message(message) -> types.SamplingMessage:
    content = message.content
    if isinstance(content, ImageContent):
        block = types.ImageContent(type="image", data=content.data, mimeType=content.mime_type)
    else:
        block = types.TextContent(type="text", text=content.text)
    return types.SamplingMessage(role=message.role, content=block)


def _to_model_preferences(request: SamplingPayload) -> Optional[types.ModelPreferences]:
    prefs = request.model_preferences
    if prefs is None:
        return None
    hints = None
    if prefs.hints is not None:
        hints = [types.ModelHint(name=hint.name) for hint in prefs.hints]
    return types.ModelPreferences(
        hints=hints,
        costPriority=prefs.cost_priority,
        speedPriority=prefs.speed_priority,
        intelligencePriority=prefs.intelligence_priority,
    )


def _dump_result(result: Any) -> Dict[str, Any]:
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


class McpClientActions:
    """Forwards console actions to MCP client sessions."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def _resolve(self, session_id: Optional[str], action: str) -> Tuple[str, Any]:
        """Pick the target session: the named one, else the most recently active."""
        if session_id:
            handle = self.registry.get_handle(session_id)
            if handle is None:
                raise SessionNotFoundError(session_id)
            return session_id, handle

        latest = self.registry.most_recent()
        if latest is None:
            raise NoActiveSessionError(action)
        return latest, self.registry.get_handle(latest)

    async def send_notification(self, params: NotificationPayload, session_id: Optional[str] = None) -> None:
        """Send a log notification to one session, or to every session."""
        session_id = session_id or params.session_id
        if session_id:
            targets = [self._resolve(session_id, "notification")]
        else:
            targets = list(self.registry.handles().items())
            if not targets:
                raise NoActiveSessionError("notification")

        results = await asyncio.gather(
            *(handle.send_log_message(level=params.level, data=params.data, logger=params.logger)
              for _, handle in targets),
            return_exceptions=True,
        )
        failures = [(sid, r) for (sid, _), r in zip(targets, results) if isinstance(r, BaseException)]
        for sid, failure in failures:
            log_warning("Notification delivery failed", component="actions", session_id=sid, error=str(failure))
            await self._forget_if_closed(sid, failure)
        if failures and len(failures) == len(targets):
            raise failures[0][1]
        log_debug("Notification sent", component="actions", level=params.level,
                  sessions=len(targets) - len(failures))

    async def create_message(self, request: SamplingPayload, session_id: Optional[str] = None) -> Dict[str, Any]:
        """Ask a client to sample an LLM completion."""
        target, session = self._resolve(session_id or request.session_id, "sampling")
        log_debug("Requesting sampling", component="actions", session_id=target, messages=len(request.messages))
        try:
            result = await session.create_message(
                messages=[_to_sampling_message(m) for m in request.messages],
                max_tokens=request.max_tokens,
                system_prompt=request.system_prompt,
                include_context=request.include_context,
                temperature=request.temperature,
                stop_sequences=request.stop_sequences,
                metadata=request.metadata,
                model_preferences=_to_model_preferences(request),
            )
        except CLOSED_STREAM_ERRORS as e:
            await self._forget_if_closed(target, e)
            raise
        return _dump_result(result)

    async def elicit_input(self, request: ElicitationPayload, session_id: Optional[str] = None) -> Dict[str, Any]:
        """Ask a client to collect structured input from its user."""
        target, session = self._resolve(session_id or request.session_id, "elicitation")
        log_debug("Requesting elicitation", component="actions", session_id=target)
        schema = request.requested_schema.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            result = await session.elicit(message=request.message, requestedSchema=schema)
        except CLOSED_STREAM_ERRORS as e:
            await self._forget_if_closed(target, e)
            raise
        return _dump_result(result)

    async def get_sessions(self) -> List[Session]:
        return self.registry.list_sessions()

    async def _forget_if_closed(self, session_id: str, error: BaseException):
        """Drop a session whose transport is gone."""
        if isinstance(error, CLOSED_STREAM_ERRORS):
            log_info("Removing disconnected session", component="actions", session_id=session_id,
                     error_type=type(error).__name__)
            await self.registry.remove(session_id)
