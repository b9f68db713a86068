"""Explicit container for the relay's components.

Everything that needs the registry, the store or the hub gets it from one
InspectorContext passed in at construction time.
"""

import time
from typing import Any, Callable, Optional

from .console import events
from .console.actions import ClientActions, McpClientActions
from .console.dispatcher import CommandDispatcher
from .console.hub import ObserverHub
from .console.models import ClientInfo, Direction, MessageEntry, Session
from .sessions.registry import SESSION_CLOSED, SESSION_OPENED, SessionRegistry
from .shared.config import Config, get_config
from .shared.logger import log_error, log_info
from .storage.message_store import MessageStore
from .storage.redis_clients import RedisClients


class InspectorContext:
    """Owns config, storage, registry, hub, actions and dispatcher."""

    def __init__(
        self,
        config: Optional[Config] = None,
        redis_clients: Optional[RedisClients] = None,
        actions: Optional[ClientActions] = None,
        clock: Callable[[], float] = time.time
    ):
        self.config = config or get_config()
        self.redis_clients = redis_clients or RedisClients(self.config.get_redis_url_with_password())
        self.store = MessageStore(
            self.redis_clients,
            history_limit=self.config.MESSAGE_HISTORY_LIMIT,
            retention_seconds=self.config.retention_seconds(),
            retention_queue_size=self.config.RETENTION_QUEUE_SIZE,
            clock=clock,
        )
        self.registry = SessionRegistry(
            session_timeout=self.config.MCP_SESSION_TIMEOUT,
            sweep_interval=self.config.SESSION_SWEEP_INTERVAL,
            clock=clock,
        )
        self.hub = ObserverHub()
        self.actions = actions or McpClientActions(self.registry)
        self.dispatcher = CommandDispatcher(self.hub, self.store, self.actions)

        self.hub.add_membership_listener(self.dispatcher.broadcast_client_list)
        self.registry.add_listener(self._on_session_change)
        self.started = False

    async def start(self):
        """Connect to Redis and start background tasks. Safe to call twice."""
        if self.started:
            return
        try:
            await self.redis_clients.initialize()
        except Exception as e:
            log_error("Redis unavailable, message history disabled", component="context", error=e,
                      url=self.redis_clients.redis_url)
        await self.store.retention.start()
        await self.registry.start_cleanup_task()
        self.started = True
        log_info("Inspector context started", component="context")

    async def shutdown(self):
        if not self.started:
            return
        await self.dispatcher.drain(self.config.COMMAND_DRAIN_TIMEOUT)
        await self.registry.stop_cleanup_task()
        await self.store.retention.stop()
        await self.redis_clients.close()
        self.started = False
        log_info("Inspector context stopped", component="context")

    async def record_traffic(self, session_id: str, direction: Direction, message: Any) -> Optional[MessageEntry]:
        """Store one protocol message and push it to observers."""
        entry = await self.store.append(session_id, direction, message)
        if entry is not None:
            await self.hub.broadcast(events.mcp_message(entry))
        return entry

    async def _on_session_change(self, change: str, session: Session):
        if change == SESSION_CLOSED:
            await self.store.remove_client(session.session_id)
            await self.hub.broadcast(events.session_closed(session))
            await self.dispatcher.broadcast_client_list()
            return

        await self.store.track_client(ClientInfo.from_session(session))
        if change == SESSION_OPENED:
            await self.hub.broadcast(events.session_opened(session))
            await self.dispatcher.broadcast_client_list()

    async def health(self) -> dict:
        return {
            "redis": await self.redis_clients.health_check(),
            "observers": len(self.hub),
            "sessions": len(self.registry),
        }
