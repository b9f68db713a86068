"""Events sent to observers.

Envelope: ``{"type": <kind>, "payload": {...}, "timestamp": <epoch ms>}``.
Every kind has a factory below; factories stamp the send-time timestamp.
"""

import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .. import __version__
from .commands import NotificationPayload
from .models import ClientInfo, MessageEntry, Session, now_ms

EventType = Literal[
    "connection_established",
    "client_list",
    "notification_sent",
    "notification_error",
    "sampling_response",
    "sampling_error",
    "elicitation_response",
    "elicitation_error",
    "message_history",
    "mcp_message",
    "session_opened",
    "session_closed",
    "error",
]


class ConsoleEvent(BaseModel):
    """Immutable outbound event."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[int] = None

    def to_json(self) -> str:
        envelope: Dict[str, Any] = {"type": self.type, "payload": self.payload}
        if self.timestamp is not None:
            envelope["timestamp"] = self.timestamp
        return json.dumps(envelope, default=str)


def _event(kind: str, payload: Dict[str, Any]) -> ConsoleEvent:
    return ConsoleEvent(type=kind, payload=payload, timestamp=now_ms())


def _error_payload(message: str, error: Optional[BaseException]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"message": message}
    if error is not None:
        payload["error"] = str(error) or type(error).__name__
    return payload


def connection_established(connection_id: str) -> ConsoleEvent:
    return _event("connection_established", {"connectionId": connection_id, "serverVersion": __version__})


def client_list(sessions: List[Session]) -> ConsoleEvent:
    return _event("client_list", {"clients": [ClientInfo.from_session(s).to_wire() for s in sessions]})


def notification_sent(params: NotificationPayload) -> ConsoleEvent:
    payload = {"level": params.level, "logger": params.logger, "data": params.data}
    if params.session_id is not None:
        payload["sessionId"] = params.session_id
    return _event("notification_sent", payload)


def notification_error(error: BaseException) -> ConsoleEvent:
    return _event("notification_error", _error_payload("Failed to send notification", error))


def sampling_response(result: Dict[str, Any]) -> ConsoleEvent:
    return _event("sampling_response", result)


def sampling_error(error: BaseException) -> ConsoleEvent:
    return _event("sampling_error", _error_payload("Sampling request failed", error))


def elicitation_response(result: Dict[str, Any]) -> ConsoleEvent:
    return _event("elicitation_response", result)


def elicitation_error(error: BaseException) -> ConsoleEvent:
    return _event("elicitation_error", _error_payload("Elicitation request failed", error))


def message_history(session_id: str, messages: List[MessageEntry], has_more: bool = False) -> ConsoleEvent:
    return _event("message_history", {
        "sessionId": session_id,
        "messages": [entry.to_wire() for entry in messages],
        "hasMore": has_more,
    })


def mcp_message(entry: MessageEntry) -> ConsoleEvent:
    return _event("mcp_message", entry.to_wire())


def session_opened(session: Session) -> ConsoleEvent:
    return _event("session_opened", session.to_wire())


def session_closed(session: Session) -> ConsoleEvent:
    return _event("session_closed", session.to_wire())


def error(message: str, details: Optional[str] = None, cause: Optional[BaseException] = None) -> ConsoleEvent:
    payload = _error_payload(message, cause)
    if details is not None:
        payload["details"] = details
    return _event("error", payload)
