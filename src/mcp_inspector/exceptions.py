"""Exceptions raised by the inspector relay."""

from typing import Optional


class InspectorError(Exception):
    """Base class for inspector errors."""


class SessionNotFoundError(InspectorError):
    """A command targeted a remote session that is not connected."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class NoActiveSessionError(InspectorError):
    """An action needs a connected remote client and there is none."""

    def __init__(self, action: Optional[str] = None):
        self.action = action
        message = "No active MCP client session"
        if action:
            message = f"{message} for {action}"
        super().__init__(message)


class StorageNotInitializedError(InspectorError):
    """The Redis client was used before ``initialize()`` completed."""
