"""Owner of the per-stage queues."""

from typing import Any, Dict, Iterable, Optional

import structlog

from voicebatch.domain.protocols.queue import DEFAULT_MAX_ATTEMPTS
from voicebatch.infrastructure.config import DEFAULT_STAGE_QUEUES, QueueConfig
from voicebatch.infrastructure.queue.in_memory_queue import InMemoryQueue


logger = structlog.get_logger(__name__)


class InMemoryQueueManager:
    """Creates and hands out one ``InMemoryQueue`` per name.

    The stage queues and the retry queue exist from construction on;
    any other name is created on first ``get_queue``.
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        *,
        queue_names: Optional[Iterable[str]] = None,
    ) -> None:
        self.config = config or QueueConfig()
        self._queues: Dict[str, InMemoryQueue] = {}

        if queue_names is None:
            queue_names = list(self.config.stage_queues or DEFAULT_STAGE_QUEUES)
            queue_names.append(self.config.retry_queue)
        for name in queue_names:
            self.get_queue(name)

    def get_queue(self, name: str) -> InMemoryQueue:
        queue = self._queues.get(name)
        if queue is None:
            queue = InMemoryQueue(
                name,
                default_max_attempts=self.config.default_max_attempts
                or DEFAULT_MAX_ATTEMPTS,
                visibility_timeout_seconds=self.config.visibility_timeout_seconds,
            )
            self._queues[name] = queue
            logger.debug("Queue created", queue=name)
        return queue

    def has_queue(self, name: str) -> bool:
        return name in self._queues

    @property
    def queue_names(self) -> list[str]:
        return list(self._queues)

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
        """Enqueue ``payload`` on ``queue_name``; the type defaults to the queue name."""
        return await self.get_queue(queue_name).enqueue(
            job_type or queue_name,
            payload,
            job_id=job_id,
            delay_ms=delay_ms,
            max_attempts=max_attempts,
        )

    async def get_queue_size(self, name: str) -> int:
        if name not in self._queues:
            return 0
        return await self._queues[name].size()

    async def get_all_queue_sizes(self) -> Dict[str, int]:
        return {name: await queue.size() for name, queue in self._queues.items()}

    async def close(self) -> None:
        for queue in self._queues.values():
            await queue.close()
        logger.info("Queue manager closed", queues=len(self._queues))
