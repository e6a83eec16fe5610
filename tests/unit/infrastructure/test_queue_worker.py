"""Tests for queue workers."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from voicebatch.infrastructure.queue.in_memory_queue import InMemoryQueue
from voicebatch.infrastructure.workers.queue_worker import QueueWorker, RetryWorker


@pytest.fixture
async def queue():
    queue = InMemoryQueue("validation", default_max_attempts=2)
    yield queue
    await queue.close()


class TestQueueWorker:
    """Test envelope handling by the worker."""

    async def test_process_one_acks_on_success(self, queue):
        handler = AsyncMock()
        worker = QueueWorker(queue, handler)
        envelope_id = await queue.enqueue("validate_item", {"item_id": "item_1"})

        assert await worker.process_one() is True

        handler.assert_awaited_once()
        assert handler.await_args.args[0].payload == {"item_id": "item_1"}
        assert await queue.get(envelope_id) is None
        assert worker.processed == 1

    async def test_process_one_fails_envelope_on_error(self, queue):
        handler = AsyncMock(side_effect=ConnectionError("provider down"))
        worker = QueueWorker(queue, handler)
        envelope_id = await queue.enqueue("validate_item", {})

        await worker.process_one()

        envelope = await queue.get(envelope_id)
        assert envelope.attempts == 1
        assert envelope.last_error == "provider down"
        assert worker.failed == 1

    async def test_process_one_on_empty_queue(self, queue):
        worker = QueueWorker(queue, AsyncMock())

        assert await worker.process_one() is False

    async def test_not_running_before_run(self, queue):
        worker = QueueWorker(queue, AsyncMock())

        assert not worker.is_running

    async def test_default_name(self, queue):
        assert QueueWorker(queue, AsyncMock()).name == "validation-worker"

    async def test_run_until_stopped(self, queue):
        done = asyncio.Event()
        handled = []

        async def handler(envelope):
            handled.append(envelope.payload["n"])
            if len(handled) == 3:
                done.set()

        worker = QueueWorker(queue, handler, poll_interval_seconds=0.01)
        for n in range(3):
            await queue.enqueue("validate_item", {"n": n})

        task = asyncio.create_task(worker.run())
        await asyncio.wait_for(done.wait(), timeout=1)
        assert worker.is_running
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert handled == [0, 1, 2]
        assert not worker.is_running


class TestRetryWorker:
    """Test the retry queue consumer."""

    async def test_delegates_to_recovery_service(self, queue):
        recovery = Mock()
        recovery.retry_error = AsyncMock()
        worker = RetryWorker(queue, recovery)
        await queue.enqueue("retry", {"error_id": "error_1", "retry_count": 1})

        await worker.process_one()

        recovery.retry_error.assert_awaited_once_with("error_1")
        assert worker.processed == 1
