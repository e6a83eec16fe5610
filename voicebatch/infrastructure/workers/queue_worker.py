"""Async consumers for the in-process queues."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from voicebatch.domain.protocols.queue import Queue, QueueJob


logger = structlog.get_logger(__name__)

EnvelopeHandler = Callable[[QueueJob], Awaitable[Any]]


class QueueWorker:
    """Pulls envelopes from one queue and hands them to a handler.

    A handler that returns acknowledges the envelope; one that raises
    records a failed attempt, leaving requeue or retirement to the queue.
    """

    def __init__(
        self,
        queue: Queue,
        handler: EnvelopeHandler,
        *,
        poll_interval_seconds: float = 0.5,
        name: Optional[str] = None,
    ):
        self.queue = queue
        self.handler = handler
        self.poll_interval_seconds = poll_interval_seconds
        self.name = name or f"{queue.name}-worker"
        self._shutdown_event = asyncio.Event()
        self._running = False
        self.processed = 0
        self.failed = 0

    @property
    def is_running(self) -> bool:
        return self._running and not self._shutdown_event.is_set()

    async def process_one(self) -> bool:
        """Handle at most one envelope.

        Returns:
            True if an envelope was taken from the queue
        """
        envelope = await self.queue.dequeue()
        if envelope is None:
            return False

        log = logger.bind(
            worker=self.name,
            envelope_id=envelope.id,
            type=envelope.type,
            attempt=envelope.attempts + 1,
        )
        try:
            await self.handler(envelope)
        except Exception as e:
            self.failed += 1
            log.warning("Envelope handler failed", error=str(e), exc_info=True)
            await self.queue.fail(envelope.id, str(e) or type(e).__name__)
        else:
            self.processed += 1
            await self.queue.ack(envelope.id)
            log.debug("Envelope processed")
        return True

    async def run(self) -> None:
        """Process envelopes until ``stop`` is called."""
        self._shutdown_event.clear()
        self._running = True
        logger.info("Queue worker started", worker=self.name)
        try:
            while not self._shutdown_event.is_set():
                if await self.process_one():
                    continue
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=self.poll_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
        logger.info(
            "Queue worker stopped",
            worker=self.name,
            processed=self.processed,
            failed=self.failed,
        )

    def stop(self) -> None:
        self._shutdown_event.set()


class RetryWorker(QueueWorker):
    """Executes scheduled error retries from the retry queue."""

    def __init__(self, queue: Queue, recovery_service, **kwargs: Any):
        self.recovery_service = recovery_service
        super().__init__(queue, self._retry, **kwargs)

    async def _retry(self, envelope: QueueJob) -> None:
        await self.recovery_service.retry_error(envelope.payload["error_id"])
