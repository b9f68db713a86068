"""Observer connection management and event fan-out.

The hub is the only component that touches observer sockets. Sends are best
effort: a failed send is logged and counted on the connection, and the
connection stays registered until its own close or error removes it.
``status()`` reports connections that have failed sends while still open so
that dead sockets lingering in the set are visible.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from . import events
from .events import ConsoleEvent
from .models import now_ms
from ..shared.logger import log_debug, log_error, log_info, log_warning

MembershipListener = Callable[[], Awaitable[None]]


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ObserverConnection:
    """One live console connection."""

    def __init__(self, websocket: Any, connection_id: Optional[str] = None):
        self.id = connection_id or str(uuid.uuid4())
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self.connected_at = now_ms()
        self.send_failures = 0

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "connectedAt": self.connected_at,
            "sendFailures": self.send_failures,
        }


class ObserverHub:
    """Tracks observer connections and delivers events to them."""

    def __init__(self):
        self._connections: Dict[str, ObserverConnection] = {}
        self._membership_listeners: List[MembershipListener] = []
        self.stats: Dict[str, int] = {
            "accepted": 0,
            "removed": 0,
            "broadcasts": 0,
            "send_failures": 0,
        }

    def add_membership_listener(self, listener: MembershipListener):
        """Register a coroutine run after every accept and remove."""
        self._membership_listeners.append(listener)

    def __len__(self) -> int:
        return len(self._connections)

    def get(self, connection_id: str) -> Optional[ObserverConnection]:
        return self._connections.get(connection_id)

    async def accept(self, websocket: Any) -> str:
        """Open a connection, greet it, then announce the membership change.

        Returns:
            The new connection id
        """
        connection = ObserverConnection(websocket)
        self._connections[connection.id] = connection
        try:
            await websocket.accept()
        except Exception:
            connection.state = ConnectionState.CLOSED
            self._connections.pop(connection.id, None)
            raise

        connection.state = ConnectionState.OPEN
        self.stats["accepted"] += 1
        log_info("Observer connected", component="hub", connection_id=connection.id,
                 observers=len(self._connections))

        await self.send_to(connection.id, events.connection_established(connection.id))
        await self._membership_changed()
        return connection.id

    async def remove(self, connection_id: str):
        """Unregister a closed or failed connection. Unknown ids are ignored."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        connection.state = ConnectionState.CLOSED
        self.stats["removed"] += 1
        log_info("Observer disconnected", component="hub", connection_id=connection_id,
                 observers=len(self._connections), send_failures=connection.send_failures)
        await self._membership_changed()

    async def broadcast(self, event: ConsoleEvent) -> int:
        """Send one event to every open connection.

        The event is serialized once. Returns the number of successful sends.
        """
        text = event.to_json()
        targets = [c for c in list(self._connections.values()) if c.is_open]
        self.stats["broadcasts"] += 1
        if not targets:
            return 0
        results = await asyncio.gather(*(self._send(c, text) for c in targets))
        delivered = sum(1 for ok in results if ok)
        log_debug("Broadcast event", component="hub", event_type=event.type,
                  targets=len(targets), delivered=delivered)
        return delivered

    async def send_to(self, connection_id: str, event: ConsoleEvent) -> bool:
        """Send to one connection; no-op for unknown or closed connections."""
        connection = self._connections.get(connection_id)
        if connection is None or not connection.is_open:
            return False
        return await self._send(connection, event.to_json())

    async def _send(self, connection: ObserverConnection, text: str) -> bool:
        try:
            await connection.websocket.send_text(text)
            return True
        except Exception as e:
            connection.send_failures += 1
            self.stats["send_failures"] += 1
            log_warning("Failed to send to observer", component="hub", connection_id=connection.id,
                        error=str(e), failures=connection.send_failures)
            return False

    async def _membership_changed(self):
        for listener in self._membership_listeners:
            try:
                await listener()
            except Exception as e:
                log_error("Membership listener failed", component="hub", error=e)

    def status(self) -> Dict[str, Any]:
        connections = [c.describe() for c in self._connections.values()]
        return {
            "connectionCount": len(connections),
            "connections": connections,
            "staleConnections": sum(1 for c in self._connections.values() if c.is_open and c.send_failures),
            "stats": dict(self.stats),
        }
