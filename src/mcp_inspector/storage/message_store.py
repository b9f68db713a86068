"""Per-session protocol traffic history in Redis.

Key layout:
    messages:{session_id}:{timestamp:013d}:{entry_id}  JSON MessageEntry
    idx:messages:{session_id}                          ZSET entry key -> timestamp
    clients:{client_id}                                JSON ClientInfo

Entry keys sort by timestamp and then by entry id, and entry ids start with a
process-wide sequence number, so entries written in the same millisecond keep
their write order in the index.

Retention runs in two passes per session, age first and then count, and is
executed by a RetentionWorker rather than by the append itself.
"""

import itertools
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..console.models import ClientInfo, Direction, MessageEntry
from ..shared.logger import log_debug, log_error, log_trace, log_warning
from .redis_clients import RedisClients
from .retention import RetentionWorker

MESSAGES_PREFIX = "messages"
CLIENTS_PREFIX = "clients"
INDEX_PREFIX = "idx:messages"

DEFAULT_HISTORY_LIMIT = 1000
DEFAULT_RETENTION_SECONDS = 7 * 24 * 60 * 60


def message_key(session_id: str, timestamp: int, entry_id: str) -> str:
    return f"{MESSAGES_PREFIX}:{session_id}:{timestamp:013d}:{entry_id}"


def index_key(session_id: str) -> str:
    return f"{INDEX_PREFIX}:{session_id}"


def client_key(client_id: str) -> str:
    return f"{CLIENTS_PREFIX}:{client_id}"


class MessageStore:
    """Bounded, time-retained message history per session."""

    def __init__(
        self,
        redis_clients: RedisClients,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
        retention_queue_size: int = 1000,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the store.

        Args:
            redis_clients: Redis connection holder
            history_limit: Maximum entries kept per session
            retention_seconds: Entries older than this are evicted
            retention_queue_size: Bound of the background cleanup queue
            clock: Time source in seconds, injectable for tests
        """
        self.redis_clients = redis_clients
        self.history_limit = history_limit
        self.retention_seconds = retention_seconds
        self.clock = clock
        self.retention = RetentionWorker(self.cleanup_session, max_queue_size=retention_queue_size)
        self._sequence = itertools.count(1)

    @property
    def redis(self):
        return self.redis_clients.async_redis

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _next_entry_id(self) -> str:
        return f"{next(self._sequence):010d}-{uuid.uuid4().hex[:12]}"

    async def append(self, session_id: str, direction: Direction, message: Any) -> Optional[MessageEntry]:
        """Record one protocol message and schedule retention for its session.

        Write failures are logged and swallowed; the caller is never blocked
        by storage or cleanup problems.

        Returns:
            The stored entry, or None if the write failed
        """
        entry = MessageEntry(
            id=self._next_entry_id(),
            timestamp=self._now_ms(),
            session_id=session_id,
            direction=Direction(direction),
            message=message,
        )
        key = message_key(session_id, entry.timestamp, entry.id)

        try:
            await self.redis.set(key, entry.model_dump_json(by_alias=True))
            await self.redis.zadd(index_key(session_id), {key: entry.timestamp})
        except Exception as e:
            log_error("Failed to record message", component="message_store", error=e,
                      session_id=session_id, direction=entry.direction.value)
            return None

        log_trace("Recorded message", component="message_store", session_id=session_id, key=key)
        self.retention.schedule(session_id)
        return entry

    async def get_messages(self, session_id: str, limit: int = 100) -> List[MessageEntry]:
        """Oldest ``limit`` entries of a session in ascending timestamp order.

        Unknown sessions and read failures both yield an empty list.
        """
        if limit <= 0:
            return []
        try:
            keys = await self.redis.zrange(index_key(session_id), 0, limit - 1)
            if not keys:
                return []
            values = await self.redis.mget(keys)
        except Exception as e:
            log_error("Failed to read message history", component="message_store", error=e,
                      session_id=session_id)
            return []

        entries = []
        for key, raw in zip(keys, values):
            if raw is None:
                continue
            try:
                entries.append(MessageEntry.model_validate_json(raw))
            except ValidationError as e:
                log_warning("Skipping unreadable message entry", component="message_store", key=key, error=str(e))
        entries.sort(key=lambda entry: (entry.timestamp, entry.id))
        return entries

    async def count_messages(self, session_id: str) -> int:
        try:
            return int(await self.redis.zcard(index_key(session_id)))
        except Exception as e:
            log_error("Failed to count messages", component="message_store", error=e, session_id=session_id)
            return 0

    async def clear_session(self, session_id: str) -> int:
        """Delete every entry of a session.

        Returns:
            Number of entries deleted
        """
        try:
            keys = await self.redis.zrange(index_key(session_id), 0, -1)
            deleted = 0
            if keys:
                deleted = await self.redis.delete(*keys)
            await self.redis.delete(index_key(session_id))
        except Exception as e:
            log_error("Failed to clear session", component="message_store", error=e, session_id=session_id)
            return 0
        log_debug("Cleared session history", component="message_store", session_id=session_id, deleted=deleted)
        return deleted

    async def cleanup_session(self, session_id: str) -> Dict[str, int]:
        """Apply retention to one session: age pass, then count pass.

        Returns:
            {"expired": n, "trimmed": m}
        """
        idx = index_key(session_id)
        cutoff = self._now_ms() - self.retention_seconds * 1000

        expired = await self.redis.zrangebyscore(idx, "-inf", f"({cutoff}")
        if expired:
            await self._delete_entries(idx, expired)

        trimmed: List[str] = []
        remaining = await self.redis.zcard(idx)
        if remaining > self.history_limit:
            surplus = remaining - self.history_limit
            trimmed = await self.redis.zrange(idx, 0, surplus - 1)
            if trimmed:
                await self._delete_entries(idx, trimmed)

        if expired or trimmed:
            log_debug("Retention cleanup", component="message_store", session_id=session_id,
                      expired=len(expired), trimmed=len(trimmed))
        return {"expired": len(expired), "trimmed": len(trimmed)}

    async def _delete_entries(self, idx: str, keys: List[str]):
        await self.redis.delete(*keys)
        await self.redis.zrem(idx, *keys)

    # Client bookkeeping

    async def track_client(self, client: ClientInfo) -> bool:
        """Upsert a client record, stamping ``lastSeen`` with the current time."""
        record = client.model_copy(update={"last_seen": self._now_ms()})
        try:
            await self.redis.set(client_key(client.client_id), record.model_dump_json(by_alias=True))
            return True
        except Exception as e:
            log_error("Failed to track client", component="message_store", error=e, client_id=client.client_id)
            return False

    async def get_clients(self) -> List[ClientInfo]:
        clients = []
        try:
            async for key in self.redis.scan_iter(match=f"{CLIENTS_PREFIX}:*"):
                raw = await self.redis.get(key)
                if raw is None:
                    continue
                try:
                    clients.append(ClientInfo.model_validate_json(raw))
                except ValidationError as e:
                    log_warning("Skipping unreadable client record", component="message_store", key=key, error=str(e))
        except Exception as e:
            log_error("Failed to list clients", component="message_store", error=e)
            return []
        clients.sort(key=lambda client: client.connected_at)
        return clients

    async def remove_client(self, client_id: str) -> bool:
        """Delete a client record if present. Safe to call repeatedly."""
        try:
            return bool(await self.redis.delete(client_key(client_id)))
        except Exception as e:
            log_error("Failed to remove client", component="message_store", error=e, client_id=client_id)
            return False

    async def get_statistics(self) -> Dict[str, int]:
        """Totals over the whole keyspace; zeros if Redis is unavailable."""
        stats = {"totalMessages": 0, "totalClients": 0, "sessionsWithMessages": 0}
        try:
            async for _ in self.redis.scan_iter(match=f"{MESSAGES_PREFIX}:*"):
                stats["totalMessages"] += 1
            async for _ in self.redis.scan_iter(match=f"{CLIENTS_PREFIX}:*"):
                stats["totalClients"] += 1
            async for key in self.redis.scan_iter(match=f"{INDEX_PREFIX}:*"):
                if await self.redis.zcard(key) > 0:
                    stats["sessionsWithMessages"] += 1
        except Exception as e:
            log_error("Failed to compute statistics", component="message_store", error=e)
            return {"totalMessages": 0, "totalClients": 0, "sessionsWithMessages": 0}
        return stats

    async def health_check(self) -> bool:
        return await self.redis_clients.health_check()
