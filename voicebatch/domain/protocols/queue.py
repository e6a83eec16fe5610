"""Domain protocols for per-stage work queues."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from voicebatch.domain.value_objects.timestamp import Timestamp


DEFAULT_MAX_ATTEMPTS = 3


@dataclass(kw_only=True)
class QueueJob:
    """Envelope for one unit of queued work.

    ``payload`` is opaque to the queue. ``attempts`` counts failed
    deliveries; the envelope is retired once it reaches ``max_attempts``.
    """

    id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    created_at: Timestamp = field(default_factory=Timestamp.now)
    available_at: Optional[Timestamp] = None
    job_id: Optional[str] = None
    dequeued_at: Optional[Timestamp] = None
    last_error: Optional[str] = None

    @property
    def is_exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


class Queue(Protocol):
    """Ordered, delayed, retrying work queue for one pipeline stage."""

    name: str

    async def enqueue(
        self,
        job_type: str,
        payload: Dict[str, Any],
        *,
        job_id: Optional[str] = None,
        delay_ms: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        """Add work and return the envelope id.

        With a positive ``delay_ms`` the envelope only becomes ready after
        the delay.
        """
        ...

    async def dequeue(self) -> Optional[QueueJob]:
        """Take the oldest ready envelope, or ``None`` when nothing is ready."""
        ...

    async def ack(self, envelope_id: str) -> None:
        """Retire a processed envelope."""
        ...

    async def fail(self, envelope_id: str, error: str) -> None:
        """Record a failed attempt; requeue at the tail unless exhausted."""
        ...

    async def size(self) -> int:
        """Number of ready envelopes."""
        ...

    async def close(self) -> None:
        """Cancel pending delayed admissions."""
        ...


class QueueManager(Protocol):
    """Owner of one queue per pipeline stage."""

    def get_queue(self, name: str) -> Queue:
        """Return the named queue, creating it on first use."""
        ...

    def has_queue(self, name: str) -> bool:
        ...

    async def add_job(
        self,
        queue_name: str,
        payload: Dict[str, Any],
        *,
        job_type: Optional[str] = None,
        delay_ms: Optional[float] = None,
        job_id: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        """Enqueue ``payload`` on ``queue_name`` and return the envelope id."""
        ...

    async def get_queue_size(self, name: str) -> int:
        ...

    async def get_all_queue_sizes(self) -> Dict[str, int]:
        ...

    async def close(self) -> None:
        ...
