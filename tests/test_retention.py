"""Retention worker queue behaviour."""

import asyncio

import pytest

from mcp_inspector.storage.retention import RetentionWorker


class TestRetentionWorker:

    @pytest.mark.asyncio
    async def test_runs_scheduled_cleanups(self):
        seen = []

        async def cleanup(session_id):
            seen.append(session_id)

        worker = RetentionWorker(cleanup, max_queue_size=10)
        await worker.start()
        worker.schedule("a")
        worker.schedule("b")
        await worker.join()
        await worker.stop()

        assert seen == ["a", "b"]
        assert worker.stats["completed"] == 2

    @pytest.mark.asyncio
    async def test_coalesces_pending_sessions(self):
        seen = []

        async def cleanup(session_id):
            seen.append(session_id)

        worker = RetentionWorker(cleanup, max_queue_size=10)
        for _ in range(5):
            worker.schedule("a")
        await worker.start()
        await worker.join()
        await worker.stop()

        assert seen == ["a"]
        assert worker.stats["coalesced"] == 4

    @pytest.mark.asyncio
    async def test_full_queue_drops_without_raising(self):
        async def cleanup(session_id):
            pass

        worker = RetentionWorker(cleanup, max_queue_size=2)

        assert worker.schedule("a") is True
        assert worker.schedule("b") is True
        assert worker.schedule("c") is False
        assert worker.stats["dropped"] == 1
        assert worker.queue_depth == 2

    @pytest.mark.asyncio
    async def test_failure_is_counted_and_worker_keeps_going(self):
        seen = []

        async def cleanup(session_id):
            if session_id == "bad":
                raise RuntimeError("boom")
            seen.append(session_id)

        worker = RetentionWorker(cleanup)
        await worker.start()
        worker.schedule("bad")
        worker.schedule("good")
        await worker.join()

        assert worker.running
        assert seen == ["good"]
        assert worker.stats["failed"] == 1
        await worker.stop()
        assert not worker.running

    @pytest.mark.asyncio
    async def test_reschedule_while_running(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def cleanup(session_id):
            calls.append(session_id)
            if len(calls) == 1:
                started.set()
                await release.wait()

        worker = RetentionWorker(cleanup)
        await worker.start()
        worker.schedule("a")
        await started.wait()
        assert worker.schedule("a") is True
        release.set()
        await worker.join()
        await worker.stop()

        assert calls == ["a", "a"]
