"""Tests for the in-process stage queue."""

import asyncio

import pytest

from voicebatch.domain.exceptions import EntityNotFoundError, InvalidValueError
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.queue.in_memory_queue import (
    VISIBILITY_TIMEOUT_ERROR,
    InMemoryQueue,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = Timestamp.now()

    def __call__(self) -> Timestamp:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now.add_milliseconds(seconds * 1000)


@pytest.fixture
async def queue():
    queue = InMemoryQueue("validation", default_max_attempts=3)
    yield queue
    await queue.close()


class TestInMemoryQueue:
    """Test ordering, acknowledgement and retry of envelopes."""

    async def test_fifo_order(self, queue):
        first = await queue.enqueue("validate_item", {"item_id": "a"}, job_id="job_1")
        second = await queue.enqueue("validate_item", {"item_id": "b"}, job_id="job_1")

        assert await queue.size() == 2
        assert (await queue.dequeue()).id == first
        assert (await queue.dequeue()).id == second
        assert await queue.dequeue() is None

    async def test_envelope_fields(self, queue):
        envelope_id = await queue.enqueue(
            "validate_item", {"item_id": "a"}, job_id="job_1", max_attempts=5
        )

        envelope = await queue.dequeue()

        assert envelope.id == envelope_id
        assert envelope.type == "validate_item"
        assert envelope.payload == {"item_id": "a"}
        assert envelope.job_id == "job_1"
        assert envelope.attempts == 0
        assert envelope.max_attempts == 5

    async def test_payload_is_copied(self, queue):
        payload = {"item_id": "a"}
        await queue.enqueue("validate_item", payload)
        payload["item_id"] = "changed"

        envelope = await queue.dequeue()
        envelope.payload["extra"] = True

        assert envelope.payload["item_id"] == "a"
        assert (await queue.get(envelope.id)).payload == {"item_id": "a"}

    async def test_ack_retires_envelope(self, queue):
        await queue.enqueue("validate_item", {})
        envelope = await queue.dequeue()

        await queue.ack(envelope.id)

        assert await queue.get(envelope.id) is None
        assert await queue.in_flight_count() == 0

    async def test_unknown_envelope(self, queue):
        with pytest.raises(EntityNotFoundError):
            await queue.ack("qjob_missing")
        with pytest.raises(EntityNotFoundError):
            await queue.fail("qjob_missing", "boom")

    async def test_failed_envelope_requeued_at_tail(self, queue):
        first = await queue.enqueue("validate_item", {"item_id": "a"})
        second = await queue.enqueue("validate_item", {"item_id": "b"})

        envelope = await queue.dequeue()
        await queue.fail(envelope.id, "provider timeout")

        assert (await queue.dequeue()).id == second
        retried = await queue.dequeue()
        assert retried.id == first
        assert retried.attempts == 1
        assert retried.last_error == "provider timeout"

    async def test_envelope_retired_after_max_attempts(self, queue):
        envelope_id = await queue.enqueue("validate_item", {}, max_attempts=2)

        for _ in range(2):
            envelope = await queue.dequeue()
            await queue.fail(envelope.id, "boom")

        assert await queue.get(envelope_id) is None
        assert await queue.size() == 0
        assert await queue.dequeue() is None

    async def test_size_counts_ready_envelopes_only(self, queue):
        await queue.enqueue("validate_item", {})
        await queue.enqueue("validate_item", {})
        await queue.enqueue("validate_item", {}, delay_ms=1000)

        await queue.dequeue()

        assert await queue.size() == 1
        assert await queue.in_flight_count() == 1
        assert await queue.delayed_count() == 1

    @pytest.mark.parametrize("max_attempts", [0, -1])
    async def test_max_attempts_below_one_rejected(self, queue, max_attempts):
        with pytest.raises(InvalidValueError):
            await queue.enqueue("validate_item", {}, max_attempts=max_attempts)

        assert await queue.size() == 0
        assert await queue.delayed_count() == 0

    async def test_default_max_attempts_applied(self, queue):
        envelope_id = await queue.enqueue("validate_item", {})

        assert (await queue.get(envelope_id)).max_attempts == 3

    async def test_single_attempt_envelope_not_requeued(self, queue):
        await queue.enqueue("retry", {"error_id": "error_1"}, max_attempts=1)

        envelope = await queue.dequeue()
        await queue.fail(envelope.id, "boom")

        assert await queue.size() == 0

    async def test_delayed_envelope(self, queue):
        await queue.enqueue("retry", {"error_id": "error_1"}, delay_ms=20)

        assert await queue.dequeue() is None
        assert await queue.delayed_count() == 1

        await asyncio.sleep(0.05)

        envelope = await queue.dequeue()
        assert envelope is not None
        assert envelope.available_at is not None
        assert await queue.delayed_count() == 0

    async def test_close_drops_delayed_envelopes(self, queue):
        envelope_id = await queue.enqueue("retry", {}, delay_ms=10)

        await queue.close()
        await asyncio.sleep(0.03)

        assert await queue.get(envelope_id) is None
        assert await queue.dequeue() is None

    async def test_stalled_envelope_reclaimed(self):
        clock = FakeClock()
        queue = InMemoryQueue("upload", visibility_timeout_seconds=60, clock=clock)
        envelope_id = await queue.enqueue("upload", {})
        await queue.dequeue()

        clock.advance(30)
        assert await queue.dequeue() is None

        clock.advance(31)
        reclaimed = await queue.dequeue()

        assert reclaimed.id == envelope_id
        assert reclaimed.attempts == 1
        assert reclaimed.last_error == VISIBILITY_TIMEOUT_ERROR

    async def test_ack_after_reclaim_is_rejected_once_retired(self):
        clock = FakeClock()
        queue = InMemoryQueue(
            "upload",
            default_max_attempts=1,
            visibility_timeout_seconds=10,
            clock=clock,
        )
        await queue.enqueue("upload", {})
        envelope = await queue.dequeue()

        clock.advance(11)
        assert await queue.size() == 0

        with pytest.raises(EntityNotFoundError):
            await queue.ack(envelope.id)
