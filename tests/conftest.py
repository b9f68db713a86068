"""Pytest configuration: in-memory Redis and WebSocket doubles plus relay fixtures."""

import json
from fnmatch import fnmatchcase
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from mcp_inspector.console.dispatcher import CommandDispatcher
from mcp_inspector.console.hub import ObserverHub
from mcp_inspector.sessions.registry import SessionRegistry
from mcp_inspector.shared.config import Config
from mcp_inspector.storage.message_store import MessageStore
from mcp_inspector.storage.redis_clients import RedisClients


class FakeRedis:
    """The subset of redis.asyncio.Redis the store uses, kept in dicts."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.fail = False
        self.closed = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("fake redis is down")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self._check()
        self.data[key] = value
        return True

    async def mget(self, keys):
        self._check()
        return [self.data.get(key) for key in keys]

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            elif self.zsets.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match=None):
        self._check()
        for key in list(self.data) + list(self.zsets):
            if match is None or fnmatchcase(key, match):
                yield key

    async def zadd(self, name, mapping):
        self._check()
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    def _ordered(self, name) -> List[str]:
        zset = self.zsets.get(name, {})
        return [member for member, _ in sorted(zset.items(), key=lambda item: (item[1], item[0]))]

    async def zrange(self, name, start, end):
        self._check()
        members = self._ordered(name)
        if end < 0:
            end = len(members) + end
        return members[start:end + 1]

    @staticmethod
    def _bound(value, lower: bool):
        text = str(value)
        if text in ("-inf", "+inf", "inf"):
            return float(text), False
        if text.startswith("("):
            return float(text[1:]), True
        return float(text), False

    async def zrangebyscore(self, name, min, max):
        self._check()
        low, low_open = self._bound(min, True)
        high, high_open = self._bound(max, False)
        zset = self.zsets.get(name, {})
        result = []
        for member in self._ordered(name):
            score = zset[member]
            if score < low or (low_open and score == low):
                continue
            if score > high or (high_open and score == high):
                continue
            result.append(member)
        return result

    async def zrem(self, name, *members):
        self._check()
        zset = self.zsets.get(name, {})
        removed = 0
        for member in members:
            if zset.pop(member, None) is not None:
                removed += 1
        if name in self.zsets and not zset:
            del self.zsets[name]
        return removed

    async def zcard(self, name):
        self._check()
        return len(self.zsets.get(name, {}))

    async def aclose(self):
        self.closed = True


class FakeWebSocket:
    """Records frames sent by the hub; can be told to fail sends."""

    def __init__(self, fail_sends: bool = False):
        self.sent: List[str] = []
        self.accepted = False
        self.fail_sends = fail_sends

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.fail_sends:
            raise ConnectionError("socket is closed")
        self.sent.append(text)

    def events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        decoded = [json.loads(text) for text in self.sent]
        if event_type is None:
            return decoded
        return [event for event in decoded if event["type"] == event_type]


class FakeClock:
    """Settable time source, in seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def redis_clients(fake_redis):
    clients = RedisClients(client=fake_redis)
    await clients.initialize()
    yield clients


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def store(redis_clients, clock):
    """Message store with small limits and a running retention worker."""
    message_store = MessageStore(
        redis_clients,
        history_limit=5,
        retention_seconds=3600,
        retention_queue_size=10,
        clock=clock,
    )
    await message_store.retention.start()
    yield message_store
    await message_store.retention.stop()


@pytest.fixture
def hub():
    return ObserverHub()


@pytest.fixture
def registry(clock):
    return SessionRegistry(session_timeout=60, sweep_interval=1, clock=clock)


@pytest.fixture
def actions():
    """Remote-client actions that succeed by default."""
    mock = AsyncMock()
    mock.send_notification.return_value = None
    mock.create_message.return_value = {
        "role": "assistant",
        "content": {"type": "text", "text": "sampled"},
        "model": "test-model",
        "stopReason": "endTurn",
    }
    mock.elicit_input.return_value = {"action": "accept", "content": {"name": "Ada"}}
    mock.get_sessions.return_value = []
    return mock


@pytest.fixture
def dispatcher(hub, store, actions):
    dispatcher = CommandDispatcher(hub, store, actions)
    hub.add_membership_listener(dispatcher.broadcast_client_list)
    return dispatcher


@pytest.fixture
def test_config():
    """Config instance with small, test-friendly limits."""
    config = Config()
    config.MESSAGE_HISTORY_LIMIT = 5
    config.MESSAGE_HISTORY_RETENTION_DAYS = 1
    config.RETENTION_QUEUE_SIZE = 10
    config.MCP_SESSION_TIMEOUT = 60
    config.SESSION_SWEEP_INTERVAL = 1
    config.COMMAND_DRAIN_TIMEOUT = 0.1
    return config
