"""In-memory registry of connected MCP client sessions.

The protocol layer writes to the registry (register, touch, remove); the
relay only reads snapshots from it. Sessions are kept in insertion order.

The protocol layer gives no signal when a client goes away. A session leaves
the registry when a send to it fails on a closed transport (see
``McpClientActions``) or when the idle sweep expires it after
``session_timeout`` seconds; until then it stays in client lists.
"""

import asyncio
import contextlib
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..console.models import Session, TransportKind
from ..shared.logger import log_debug, log_error, log_info

SessionListener = Callable[[str, Session], Awaitable[None]]

SESSION_OPENED = "opened"
SESSION_UPDATED = "updated"
SESSION_CLOSED = "closed"


class SessionRegistry:
    """Tracks remote client sessions and the handles used to reach them."""

    def __init__(self, session_timeout: int = 3600, sweep_interval: int = 60,
                 clock: Callable[[], float] = time.time):
        """Initialize the registry.

        Args:
            session_timeout: Idle seconds before a session is expired
            sweep_interval: Seconds between expiry sweeps
            clock: Time source in seconds
        """
        self.session_timeout = session_timeout
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._sessions: Dict[str, Session] = {}
        self._handles: Dict[str, Any] = {}
        self._listeners: List[SessionListener] = []
        self._cleanup_task: Optional[asyncio.Task] = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def add_listener(self, listener: SessionListener):
        """Register a coroutine called as ``listener(change, session)``."""
        self._listeners.append(listener)

    async def _notify(self, change: str, session: Session):
        for listener in self._listeners:
            try:
                await listener(change, session)
            except Exception as e:
                log_error("Session listener failed", component="registry", error=e,
                          change=change, session_id=session.session_id)

    async def register(
        self,
        session_id: str,
        transport: TransportKind,
        handle: Any = None,
        protocol_version: Optional[str] = None,
        client_info: Optional[Dict[str, Any]] = None
    ) -> Session:
        """Add a session, or return the existing one for a known id."""
        existing = self._sessions.get(session_id)
        if existing is not None:
            if handle is not None:
                self._handles[session_id] = handle
            return existing.model_copy(deep=True)

        now = self._now_ms()
        metadata: Dict[str, Any] = {}
        if client_info:
            metadata["clientInfo"] = client_info
        session = Session(
            session_id=session_id,
            transport=TransportKind(transport),
            connected_at=now,
            last_activity=now,
            protocol_version=protocol_version,
            metadata=metadata,
        )
        self._sessions[session_id] = session
        if handle is not None:
            self._handles[session_id] = handle

        log_info("MCP session registered", component="registry", session_id=session_id,
                 transport=session.transport.value, client=(client_info or {}).get("name"))
        await self._notify(SESSION_OPENED, session.model_copy(deep=True))
        return session.model_copy(deep=True)

    async def touch(self, session_id: str, meta: Optional[Dict[str, Any]] = None) -> Optional[Session]:
        """Record one request on a session: bump the counter and activity time."""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        metadata = dict(session.metadata)
        if meta is not None:
            metadata["lastMeta"] = meta
        updated = session.model_copy(update={
            "last_activity": self._now_ms(),
            "request_count": session.request_count + 1,
            "metadata": metadata,
        })
        self._sessions[session_id] = updated
        await self._notify(SESSION_UPDATED, updated.model_copy(deep=True))
        return updated.model_copy(deep=True)

    async def remove(self, session_id: str) -> Optional[Session]:
        """Drop a session. Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        self._handles.pop(session_id, None)
        if session is None:
            return None
        log_info("MCP session removed", component="registry", session_id=session_id)
        await self._notify(SESSION_CLOSED, session)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    def get_handle(self, session_id: str) -> Any:
        return self._handles.get(session_id)

    def list_sessions(self) -> List[Session]:
        """Snapshots of all sessions in insertion order."""
        return [session.model_copy(deep=True) for session in self._sessions.values()]

    def handles(self) -> Dict[str, Any]:
        return dict(self._handles)

    def most_recent(self) -> Optional[str]:
        """Id of the most recently active session that has a handle."""
        candidates = [s for s in self._sessions.values() if s.session_id in self._handles]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.last_activity).session_id

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def cleanup_expired_sessions(self) -> List[str]:
        """Remove sessions idle for longer than the timeout."""
        cutoff = self._now_ms() - self.session_timeout * 1000
        expired = [sid for sid, s in self._sessions.items() if s.last_activity < cutoff]
        for session_id in expired:
            log_info("Cleaning up expired session", component="registry", session_id=session_id)
            await self.remove(session_id)
        return expired

    async def start_cleanup_task(self):
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            log_debug("Started session cleanup task", component="registry")

    async def stop_cleanup_task(self):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None
            log_debug("Stopped session cleanup task", component="registry")

    async def _cleanup_loop(self):
        while True:
            try:
                await asyncio.sleep(self.sweep_interval)
                await self.cleanup_expired_sessions()
            except asyncio.CancelledError:
                break
            except Exception as e:
                log_error("Error in session cleanup", component="registry", error=e)
