"""Session registry tests."""

import pytest

from mcp_inspector.console.models import TransportKind


class TestSessionRegistry:

    @pytest.mark.asyncio
    async def test_register_and_list_in_insertion_order(self, registry, clock):
        await registry.register("b", TransportKind.HTTP)
        clock.advance(1)
        await registry.register("a", TransportKind.STDIO)

        sessions = registry.list_sessions()

        assert [s.session_id for s in sessions] == ["b", "a"]
        assert sessions[1].transport == TransportKind.STDIO
        assert sessions[0].connected_at == sessions[0].last_activity

    @pytest.mark.asyncio
    async def test_register_records_client_details(self, registry):
        session = await registry.register(
            "s1", "http", protocol_version="2025-06-18", client_info={"name": "cli", "version": "0.1"}
        )

        assert session.protocol_version == "2025-06-18"
        assert session.metadata["clientInfo"] == {"name": "cli", "version": "0.1"}

    @pytest.mark.asyncio
    async def test_register_existing_keeps_session(self, registry, clock):
        first = await registry.register("s1", "http")
        clock.advance(5)
        second = await registry.register("s1", "http", handle=object())

        assert second.connected_at == first.connected_at
        assert len(registry) == 1
        assert registry.get_handle("s1") is not None

    @pytest.mark.asyncio
    async def test_touch_counts_requests(self, registry, clock):
        await registry.register("s1", "http")
        clock.advance(3)
        await registry.touch("s1", {"progressToken": 7})
        session = await registry.touch("s1")

        assert session.request_count == 2
        assert session.last_activity == int(clock() * 1000)
        assert session.metadata["lastMeta"] == {"progressToken": 7}

    @pytest.mark.asyncio
    async def test_touch_unknown_session(self, registry):
        assert await registry.touch("missing") is None

    @pytest.mark.asyncio
    async def test_snapshots_do_not_leak_mutation(self, registry):
        await registry.register("s1", "http", client_info={"name": "cli"})

        snapshot = registry.list_sessions()[0]
        snapshot.metadata["clientInfo"]["name"] = "changed"

        assert registry.get("s1").metadata["clientInfo"]["name"] == "cli"

    @pytest.mark.asyncio
    async def test_remove_notifies_and_drops_handle(self, registry):
        changes = []

        async def listener(change, session):
            changes.append((change, session.session_id))

        registry.add_listener(listener)
        await registry.register("s1", "http", handle=object())
        await registry.remove("s1")
        await registry.remove("s1")

        assert changes == [("opened", "s1"), ("closed", "s1")]
        assert registry.get_handle("s1") is None
        assert "s1" not in registry

    @pytest.mark.asyncio
    async def test_listener_failure_is_contained(self, registry):
        async def broken(change, session):
            raise RuntimeError("listener down")

        registry.add_listener(broken)

        session = await registry.register("s1", "http")

        assert session.session_id == "s1"

    @pytest.mark.asyncio
    async def test_most_recent_prefers_latest_activity(self, registry, clock):
        await registry.register("old", "http", handle=object())
        clock.advance(1)
        await registry.register("new", "http", handle=object())
        clock.advance(1)
        await registry.touch("old")

        assert registry.most_recent() == "old"

    @pytest.mark.asyncio
    async def test_most_recent_ignores_sessions_without_handle(self, registry):
        await registry.register("bare", "http")

        assert registry.most_recent() is None

    @pytest.mark.asyncio
    async def test_cleanup_expired_sessions(self, registry, clock):
        await registry.register("idle", "http")
        clock.advance(30)
        await registry.register("busy", "http")
        clock.advance(45)

        expired = await registry.cleanup_expired_sessions()

        assert expired == ["idle"]
        assert [s.session_id for s in registry.list_sessions()] == ["busy"]
