"""In-process FIFO work queue with delayed admission and bounded retries.

Envelopes live in one table keyed by id. An envelope is *waiting* while
its id sits in the ready deque, *in flight* after ``dequeue`` and before
``ack``/``fail``, and *retired* once it leaves the table.
"""

import asyncio
import dataclasses
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Set
from uuid import uuid4

import structlog

from voicebatch.domain.exceptions import (
    EntityNotFoundError,
    ErrorContext,
    InvalidValueError,
)
from voicebatch.domain.protocols.queue import DEFAULT_MAX_ATTEMPTS, QueueJob
from voicebatch.domain.value_objects.timestamp import Timestamp


logger = structlog.get_logger(__name__)

VISIBILITY_TIMEOUT_ERROR = "visibility timeout"


class InMemoryQueue:
    """Single-process queue for one pipeline stage.

    All mutation of the envelope table happens under ``self._lock``;
    delayed admissions run as loop callbacks, which never interleave
    with a locked section because those sections do not await.
    """

    def __init__(
        self,
        name: str,
        *,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        visibility_timeout_seconds: Optional[float] = 300.0,
        clock: Callable[[], Timestamp] = Timestamp.now,
    ) -> None:
        self.name = name
        self.default_max_attempts = default_max_attempts
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self._clock = clock

        self._envelopes: Dict[str, QueueJob] = {}
        self._ready: Deque[str] = deque()
        self._in_flight: Set[str] = set()
        self._delayed: Dict[str, asyncio.TimerHandle] = {}
        self._lock = asyncio.Lock()

    async def enqueue(
        self,
        job_type: str,
        payload: Dict[str, Any],
        *,
        job_id: Optional[str] = None,
        delay_ms: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        if max_attempts is None:
            max_attempts = self.default_max_attempts
        elif max_attempts < 1:
            raise InvalidValueError(
                "Max attempts must be at least 1",
                context=ErrorContext(
                    entity_type="QueueJob",
                    field_name="max_attempts",
                    invalid_value=max_attempts,
                ),
            )

        envelope_id = f"qjob_{uuid4().hex}"
        now = self._clock()
        envelope = QueueJob(
            id=envelope_id,
            type=job_type,
            payload=dict(payload),
            max_attempts=max_attempts,
            created_at=now,
            job_id=job_id,
        )

        async with self._lock:
            self._envelopes[envelope_id] = envelope
            if delay_ms and delay_ms > 0:
                envelope.available_at = now.add_milliseconds(delay_ms)
                loop = asyncio.get_running_loop()
                self._delayed[envelope_id] = loop.call_later(
                    delay_ms / 1000.0, self._admit, envelope_id
                )
            else:
                self._ready.append(envelope_id)

        logger.debug(
            "Envelope enqueued",
            queue=self.name,
            envelope_id=envelope_id,
            type=job_type,
            job_id=job_id,
            delay_ms=delay_ms,
        )
        return envelope_id

    def _admit(self, envelope_id: str) -> None:
        self._delayed.pop(envelope_id, None)
        if envelope_id in self._envelopes and envelope_id not in self._ready:
            self._ready.append(envelope_id)

    async def dequeue(self) -> Optional[QueueJob]:
        async with self._lock:
            self._reclaim_stalled()
            while self._ready:
                envelope_id = self._ready.popleft()
                envelope = self._envelopes.get(envelope_id)
                if envelope is None:
                    continue
                envelope.dequeued_at = self._clock()
                self._in_flight.add(envelope_id)
                return dataclasses.replace(envelope, payload=dict(envelope.payload))
            return None

    async def ack(self, envelope_id: str) -> None:
        async with self._lock:
            self._require(envelope_id)
            self._retire(envelope_id)
        logger.debug("Envelope acknowledged", queue=self.name, envelope_id=envelope_id)

    async def fail(self, envelope_id: str, error: str) -> None:
        async with self._lock:
            self._require(envelope_id)
            self._fail_locked(envelope_id, error)

    def _fail_locked(self, envelope_id: str, error: str) -> None:
        envelope = self._envelopes[envelope_id]
        envelope.attempts += 1
        envelope.last_error = error
        envelope.dequeued_at = None
        self._in_flight.discard(envelope_id)

        if envelope.attempts < envelope.max_attempts:
            if envelope_id not in self._ready:
                self._ready.append(envelope_id)
            logger.info(
                "Envelope requeued after failure",
                queue=self.name,
                envelope_id=envelope_id,
                attempts=envelope.attempts,
                max_attempts=envelope.max_attempts,
                error=error,
            )
            return

        self._retire(envelope_id)
        logger.error(
            "Envelope failed permanently",
            queue=self.name,
            envelope_id=envelope_id,
            type=envelope.type,
            job_id=envelope.job_id,
            attempts=envelope.attempts,
            error=error,
        )

    def _reclaim_stalled(self) -> None:
        if self.visibility_timeout_seconds is None or not self._in_flight:
            return
        now = self._clock()
        for envelope_id in list(self._in_flight):
            dequeued_at = self._envelopes[envelope_id].dequeued_at
            if (
                dequeued_at is not None
                and now.seconds_since(dequeued_at) >= self.visibility_timeout_seconds
            ):
                logger.warning(
                    "Reclaiming stalled envelope",
                    queue=self.name,
                    envelope_id=envelope_id,
                )
                self._fail_locked(envelope_id, VISIBILITY_TIMEOUT_ERROR)

    def _require(self, envelope_id: str) -> None:
        if envelope_id not in self._envelopes:
            raise EntityNotFoundError("QueueJob", envelope_id)

    def _retire(self, envelope_id: str) -> None:
        self._envelopes.pop(envelope_id, None)
        self._in_flight.discard(envelope_id)
        handle = self._delayed.pop(envelope_id, None)
        if handle is not None:
            handle.cancel()
        try:
            self._ready.remove(envelope_id)
        except ValueError:
            pass

    async def size(self) -> int:
        """Number of envelopes ready for delivery."""
        async with self._lock:
            self._reclaim_stalled()
            return len(self._ready)

    async def in_flight_count(self) -> int:
        async with self._lock:
            return len(self._in_flight)

    async def delayed_count(self) -> int:
        async with self._lock:
            return len(self._delayed)

    async def get(self, envelope_id: str) -> Optional[QueueJob]:
        """Snapshot of a live envelope, or ``None`` once retired."""
        async with self._lock:
            envelope = self._envelopes.get(envelope_id)
            return dataclasses.replace(envelope) if envelope else None

    async def close(self) -> None:
        async with self._lock:
            for envelope_id, handle in list(self._delayed.items()):
                handle.cancel()
                self._envelopes.pop(envelope_id, None)
            cancelled = len(self._delayed)
            self._delayed.clear()
        logger.debug("Queue closed", queue=self.name, cancelled_delayed=cancelled)
