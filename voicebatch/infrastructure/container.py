"""Composition root.

Builds one fully wired orchestration core. Nothing here is a module
global: every call to ``build_core`` returns an independent bus, queue
manager and set of services.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from voicebatch.application.services.error_recovery_service import ErrorRecoveryService
from voicebatch.application.services.job_locks import KeyedLock
from voicebatch.application.services.job_orchestrator import JobOrchestrator
from voicebatch.application.use_cases.job_control import (
    CancelJobUseCase,
    PauseJobUseCase,
    ResumeJobUseCase,
    RetryFailedItemsUseCase,
)
from voicebatch.domain.repositories import (
    ContentItemRepository,
    ErrorLogRepository,
    JobRepository,
)
from voicebatch.domain.services.retry_policy import RetryPolicy
from voicebatch.infrastructure.config import Settings, get_settings
from voicebatch.infrastructure.events.in_memory_event_bus import InMemoryEventBus
from voicebatch.infrastructure.persistence.in_memory import (
    InMemoryContentItemRepository,
    InMemoryErrorLogRepository,
    InMemoryJobRepository,
)
from voicebatch.infrastructure.queue.queue_manager import InMemoryQueueManager
from voicebatch.infrastructure.workers.queue_worker import RetryWorker


logger = structlog.get_logger(__name__)


@dataclass
class CoreContainer:
    """Everything the orchestration core consists of."""

    settings: Settings
    job_repo: JobRepository
    item_repo: ContentItemRepository
    error_repo: ErrorLogRepository
    event_bus: InMemoryEventBus
    queue_manager: InMemoryQueueManager
    locks: KeyedLock
    orchestrator: JobOrchestrator
    recovery: ErrorRecoveryService
    retry_worker: RetryWorker
    pause_job: PauseJobUseCase
    resume_job: ResumeJobUseCase
    cancel_job: CancelJobUseCase
    retry_failed_items: RetryFailedItemsUseCase

    async def shutdown(self) -> None:
        self.retry_worker.stop()
        self.orchestrator.unregister()
        self.recovery.unregister()
        await self.queue_manager.close()
        self.event_bus.clear()


def build_core(
    settings: Optional[Settings] = None,
    *,
    job_repo: Optional[JobRepository] = None,
    item_repo: Optional[ContentItemRepository] = None,
    error_repo: Optional[ErrorLogRepository] = None,
    policy: Optional[RetryPolicy] = None,
    register: bool = True,
    **recovery_kwargs,
) -> CoreContainer:
    """Wire the orchestration core.

    Args:
        settings: Settings to use; defaults to the cached settings
        job_repo: Job repository; in-memory when omitted
        item_repo: Content item repository; in-memory when omitted
        error_repo: Error log repository; in-memory when omitted
        policy: Retry policy override, e.g. with a fixed random source
        register: Subscribe the orchestrator and recovery service to the bus
        **recovery_kwargs: Extra arguments for ``ErrorRecoveryService`` (``sleep``)

    Returns:
        The wired container
    """
    settings = settings or get_settings()
    if job_repo is None:
        job_repo = InMemoryJobRepository()
    if item_repo is None:
        item_repo = InMemoryContentItemRepository()
    if error_repo is None:
        error_repo = InMemoryErrorLogRepository()

    event_bus = InMemoryEventBus()
    queue_manager = InMemoryQueueManager(settings.queue)
    locks = KeyedLock()

    orchestrator = JobOrchestrator(
        job_repo,
        item_repo,
        event_bus,
        queue_manager,
        config=settings.orchestrator,
        queue_config=settings.queue,
        locks=locks,
    )
    recovery = ErrorRecoveryService(
        error_repo,
        event_bus,
        queue_manager,
        policy=policy,
        config=settings.retry,
        queue_config=settings.queue,
        **recovery_kwargs,
    )
    retry_worker = RetryWorker(
        queue_manager.get_queue(settings.queue.retry_queue),
        recovery,
        poll_interval_seconds=settings.queue.worker_poll_interval_seconds,
    )

    if register:
        orchestrator.register()
        recovery.register()

    logger.debug("Orchestration core built", queues=queue_manager.queue_names)

    return CoreContainer(
        settings=settings,
        job_repo=job_repo,
        item_repo=item_repo,
        error_repo=error_repo,
        event_bus=event_bus,
        queue_manager=queue_manager,
        locks=locks,
        orchestrator=orchestrator,
        recovery=recovery,
        retry_worker=retry_worker,
        pause_job=PauseJobUseCase(job_repo, event_bus, locks),
        resume_job=ResumeJobUseCase(
            job_repo, event_bus, locks, config=settings.orchestrator
        ),
        cancel_job=CancelJobUseCase(job_repo, item_repo, event_bus, locks),
        retry_failed_items=RetryFailedItemsUseCase(
            job_repo,
            item_repo,
            event_bus,
            queue_manager,
            locks,
            queue_config=settings.queue,
            config=settings.orchestrator,
        ),
    )
