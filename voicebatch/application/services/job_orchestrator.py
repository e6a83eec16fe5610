"""Job orchestration application service.

Drives a job from start to a terminal state by reacting to bus events:
a started job fans its items out to the first stage queue, and every
item result updates the job's counters until the job completes or
crosses the failure threshold.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from voicebatch.application.services.job_locks import KeyedLock
from voicebatch.domain.entities.job import Job, JobStatus
from voicebatch.domain.events import (
    DomainEvent,
    EventType,
    ItemCompletedEvent,
    ItemFailedEvent,
    JobStartedEvent,
)
from voicebatch.domain.exceptions import (
    EntityNotFoundError,
    InvalidStateTransition,
    StateTransitionInfo,
)
from voicebatch.domain.protocols.event_bus import EventBus, Unsubscribe
from voicebatch.domain.protocols.queue import QueueManager
from voicebatch.domain.repositories.content_item_repository import ContentItemRepository
from voicebatch.domain.repositories.job_repository import JobRepository
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.config import OrchestratorConfig, QueueConfig
from voicebatch.infrastructure.observability.logfire_decorators import traced


logger = structlog.get_logger(__name__)


def too_many_failures_message(job: Job) -> str:
    return f"Too many items failed ({job.failed_items}/{job.total_items})"


@dataclass(frozen=True)
class JobStatusView:
    """Read model returned by ``get_job_status``."""

    status: JobStatus
    progress: float
    completed_items: int
    total_items: int
    failed_items: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "progress": self.progress,
            "completed_items": self.completed_items,
            "total_items": self.total_items,
            "failed_items": self.failed_items,
        }


class JobOrchestrator:
    """Application service for job lifecycle orchestration.

    Every load-mutate-save of a job happens under that job's lock, and the
    events the aggregate recorded are published only after the lock is
    released so handlers may touch the same job again.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        item_repo: ContentItemRepository,
        event_bus: EventBus,
        queue_manager: QueueManager,
        config: Optional[OrchestratorConfig] = None,
        queue_config: Optional[QueueConfig] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """Initialize the orchestrator.

        Args:
            job_repo: Repository for job aggregates
            item_repo: Repository for the items of a job
            event_bus: Bus the orchestrator listens to and publishes on
            queue_manager: Owner of the stage queues
            config: Failure threshold and envelope type settings
            queue_config: Name of the first stage queue
            locks: Per-job lock registry shared with the job-control use cases
        """
        self.job_repo = job_repo
        self.item_repo = item_repo
        self.event_bus = event_bus
        self.queue_manager = queue_manager
        self.config = config or OrchestratorConfig()
        self.queue_config = queue_config or QueueConfig()
        self.locks = locks if locks is not None else KeyedLock()
        self._subscriptions: List[Unsubscribe] = []

    def register(self) -> None:
        """Subscribe the orchestrator's handlers to the bus."""
        if self._subscriptions:
            return
        self._subscriptions = [
            self.event_bus.subscribe(EventType.JOB_STARTED, self.handle_job_started),
            self.event_bus.subscribe(
                EventType.ITEM_COMPLETED, self.handle_item_completed
            ),
            self.event_bus.subscribe(EventType.ITEM_FAILED, self.handle_item_failed),
        ]

    def unregister(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

    @traced(name="orchestrator.start_job_processing")
    async def start_job_processing(self, job_id: str) -> Job:
        """Move a PENDING job to PROCESSING and announce it.

        Args:
            job_id: Job to start

        Returns:
            The started job

        Raises:
            EntityNotFoundError: If the job does not exist
            InvalidStateTransition: If the job is not PENDING
        """
        async with self.locks.hold(job_id):
            job = await self._load(job_id)
            if job.status != JobStatus.PENDING:
                raise InvalidStateTransition(
                    StateTransitionInfo(
                        from_state=job.status.value,
                        to_state=JobStatus.PROCESSING.value,
                        allowed_states=[JobStatus.PENDING.value],
                        entity_type="Job",
                        entity_id=job_id,
                    )
                )
            job.start()
            job.started_at = Timestamp.now()
            events = await self._save_collecting_events(job)

        logger.info("Job processing started", job_id=job_id, total_items=job.total_items)
        await self.event_bus.publish_many(events)
        return job

    async def get_job_status(self, job_id: str) -> JobStatusView:
        """Current progress of a job.

        Raises:
            EntityNotFoundError: If the job does not exist
        """
        job = await self._load(job_id)
        return JobStatusView(
            status=job.status,
            progress=job.progress,
            completed_items=job.completed_items,
            total_items=job.total_items,
            failed_items=job.failed_items,
        )

    # Event handlers

    @traced(name="orchestrator.handle_job_started")
    async def handle_job_started(self, event: JobStartedEvent) -> None:
        """Fan the job's items out to the first stage queue.

        Never raises: a failure while enqueueing forces the job to FAILED.
        """
        job_id = event.job_id
        try:
            job = await self.job_repo.get(job_id)
            if job is None:
                logger.error("Started job not found", job_id=job_id)
                return

            items = await self.item_repo.get_by_job(job_id)
            for item in items:
                await self.queue_manager.add_job(
                    self.queue_config.first_stage,
                    {"item_id": item.id, "job_id": job_id},
                    job_type=self.config.item_job_type,
                    job_id=job_id,
                )
            logger.info(
                "Job items enqueued",
                job_id=job_id,
                item_count=len(items),
                queue=self.queue_config.first_stage,
            )
        except Exception as e:
            logger.error("Failed to enqueue job items", job_id=job_id, exc_info=True)
            await self._force_failed(job_id, str(e) or type(e).__name__)

    @traced(name="orchestrator.handle_item_completed")
    async def handle_item_completed(self, event: ItemCompletedEvent) -> None:
        """Count a completed item and complete the job when all items are in.

        Raises:
            EntityNotFoundError: If the job does not exist
        """
        async with self.locks.hold(event.job_id):
            job = await self._load(event.job_id)
            if job.is_terminal:
                self._log_ignored(job, event)
                return

            job.record_item_completed()
            if job.all_items_processed and job.status == JobStatus.PROCESSING:
                job.complete()
            events = await self._save_collecting_events(job)

        logger.debug(
            "Item completed",
            job_id=job.id,
            item_id=event.item_id,
            completed_items=job.completed_items,
            total_items=job.total_items,
        )
        await self.event_bus.publish_many(events)

    @traced(name="orchestrator.handle_item_failed")
    async def handle_item_failed(self, event: ItemFailedEvent) -> None:
        """Count a failed item and fail the job past the failure threshold.

        Raises:
            EntityNotFoundError: If the job does not exist
        """
        async with self.locks.hold(event.job_id):
            job = await self._load(event.job_id)
            if job.is_terminal:
                self._log_ignored(job, event)
                return

            job.record_item_failed()
            threshold = job.failure_threshold(self.config.failure_threshold_ratio)
            if job.status == JobStatus.PROCESSING:
                if job.failed_items >= threshold:
                    job.fail(too_many_failures_message(job))
                elif job.all_items_processed:
                    job.complete()
            events = await self._save_collecting_events(job)

        logger.warning(
            "Item failed",
            job_id=job.id,
            item_id=event.item_id,
            error=event.error,
            failed_items=job.failed_items,
            threshold=threshold,
        )
        await self.event_bus.publish_many(events)

    # Helpers

    async def _load(self, job_id: str) -> Job:
        job = await self.job_repo.get(job_id)
        if job is None:
            raise EntityNotFoundError("Job", job_id)
        return job

    async def _save_collecting_events(self, job: Job) -> List[DomainEvent]:
        events = job.clear_domain_events()
        await self.job_repo.save(job)
        return events

    async def _force_failed(self, job_id: str, error: str) -> None:
        try:
            async with self.locks.hold(job_id):
                job = await self.job_repo.get(job_id)
                if job is None or job.status != JobStatus.PROCESSING:
                    logger.warning(
                        "Job not failed after enqueue error",
                        job_id=job_id,
                        job_status=job.status.value if job else None,
                    )
                    return
                job.fail(error)
                events = await self._save_collecting_events(job)
            await self.event_bus.publish_many(events)
        except Exception:
            logger.error("Failed to mark job as failed", job_id=job_id, exc_info=True)

    @staticmethod
    def _log_ignored(job: Job, event: DomainEvent) -> None:
        logger.warning(
            "Ignoring item event for finished job",
            job_id=job.id,
            job_status=job.status.value,
            event_type=event.event_type.value,
        )
