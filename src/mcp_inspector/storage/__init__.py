"""Redis-backed persistence for recorded traffic and client bookkeeping."""

from .message_store import MessageStore
from .redis_clients import RedisClients
from .retention import RetentionWorker

__all__ = ["MessageStore", "RedisClients", "RetentionWorker"]
