"""Job control use cases: pause, resume, cancel and retry failed items."""

from dataclasses import dataclass
from typing import List, Optional

import structlog

from voicebatch.application.services.job_locks import KeyedLock
from voicebatch.application.services.job_orchestrator import too_many_failures_message
from voicebatch.application.use_cases.base import UseCase, UseCaseResult, ResultStatus
from voicebatch.domain.entities.content_item import ItemStatus
from voicebatch.domain.entities.job import Job, JobStatus
from voicebatch.domain.events import DomainEvent
from voicebatch.domain.exceptions import (
    BusinessRuleViolation,
    EntityNotFoundError,
    InvalidStateTransition,
)
from voicebatch.domain.protocols.event_bus import EventBus
from voicebatch.domain.protocols.queue import QueueManager
from voicebatch.domain.repositories.content_item_repository import ContentItemRepository
from voicebatch.domain.repositories.job_repository import JobRepository
from voicebatch.infrastructure.config import OrchestratorConfig, QueueConfig


logger = structlog.get_logger(__name__)


@dataclass
class JobControlRequest:
    """Request naming the job to act on."""

    job_id: str


@dataclass
class CancelJobRequest(JobControlRequest):
    """Request to cancel a job."""

    reason: str = "Cancelled by user"


@dataclass
class RetryFailedItemsRequest(JobControlRequest):
    """Request to retry failed items of a job."""

    item_ids: Optional[List[str]] = None  # If None, retry all failed items


@dataclass
class JobControlResult(UseCaseResult):
    """Result of a job control command."""

    job_id: Optional[str] = None
    job_status: Optional[str] = None


@dataclass
class CancelJobResult(JobControlResult):
    """Result of job cancellation."""

    cancelled_items: int = 0


@dataclass
class RetryFailedItemsResult(JobControlResult):
    """Result of a failed-item retry."""

    retried_items: int = 0
    skipped_items: int = 0


class _JobControlUseCase:
    """Shared plumbing: per-job locking, error mapping and event publishing."""

    def __init__(
        self,
        job_repo: JobRepository,
        event_bus: EventBus,
        locks: Optional[KeyedLock] = None,
    ):
        self.job_repo = job_repo
        self.event_bus = event_bus
        self.locks = locks if locks is not None else KeyedLock()

    async def _load(self, job_id: str) -> Job:
        job = await self.job_repo.get(job_id)
        if job is None:
            raise EntityNotFoundError("Job", job_id)
        return job

    async def _save_and_collect(self, job: Job) -> List[DomainEvent]:
        events = job.clear_domain_events()
        await self.job_repo.save(job)
        return events

    @staticmethod
    def _error_result(result_cls, job_id: str, error: Exception):
        if isinstance(error, EntityNotFoundError):
            status = ResultStatus.NOT_FOUND
        elif isinstance(error, InvalidStateTransition):
            status = ResultStatus.INVALID_STATE
        else:
            status = ResultStatus.VALIDATION_ERROR
        return result_cls(
            status=status,
            job_id=job_id,
            errors=[error.message],
            message=error.message,
        )


class PauseJobUseCase(_JobControlUseCase, UseCase[JobControlRequest, JobControlResult]):
    """Pause a processing job; in-flight items still report back."""

    async def execute(self, request: JobControlRequest) -> JobControlResult:
        try:
            async with self.locks.hold(request.job_id):
                job = await self._load(request.job_id)
                job.pause()
                events = await self._save_and_collect(job)
        except (EntityNotFoundError, BusinessRuleViolation) as e:
            return self._error_result(JobControlResult, request.job_id, e)

        await self.event_bus.publish_many(events)
        logger.info("Job paused", job_id=job.id)
        return JobControlResult(
            status=ResultStatus.SUCCESS,
            job_id=job.id,
            job_status=job.status.value,
            data=job.to_dict(),
            message="Job paused",
        )


class ResumeJobUseCase(_JobControlUseCase, UseCase[JobControlRequest, JobControlResult]):
    """Resume a paused job.

    Item results keep arriving while a job is paused, so the completion and
    failure-threshold checks the orchestrator skipped are applied here.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        event_bus: EventBus,
        locks: Optional[KeyedLock] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        super().__init__(job_repo, event_bus, locks)
        self.config = config or OrchestratorConfig()

    async def execute(self, request: JobControlRequest) -> JobControlResult:
        try:
            async with self.locks.hold(request.job_id):
                job = await self._load(request.job_id)
                job.resume()
                threshold = job.failure_threshold(self.config.failure_threshold_ratio)
                if job.failed_items and job.failed_items >= threshold:
                    job.fail(too_many_failures_message(job))
                elif job.all_items_processed:
                    job.complete()
                events = await self._save_and_collect(job)
        except (EntityNotFoundError, BusinessRuleViolation) as e:
            return self._error_result(JobControlResult, request.job_id, e)

        await self.event_bus.publish_many(events)
        logger.info("Job resumed", job_id=job.id, job_status=job.status.value)
        return JobControlResult(
            status=ResultStatus.SUCCESS,
            job_id=job.id,
            job_status=job.status.value,
            data=job.to_dict(),
            message="Job resumed",
        )


class CancelJobUseCase(_JobControlUseCase, UseCase[CancelJobRequest, CancelJobResult]):
    """Cancel a job and every item that has not finished yet."""

    def __init__(
        self,
        job_repo: JobRepository,
        item_repo: ContentItemRepository,
        event_bus: EventBus,
        locks: Optional[KeyedLock] = None,
    ):
        super().__init__(job_repo, event_bus, locks)
        self.item_repo = item_repo

    async def execute(self, request: CancelJobRequest) -> CancelJobResult:
        try:
            async with self.locks.hold(request.job_id):
                job = await self._load(request.job_id)
                if job.is_terminal:
                    # Let the state machine produce the error before items are touched
                    job.cancel(request.reason)

                items = await self.item_repo.get_by_job(job.id)
                open_items = [item for item in items if not item.is_terminal]
                for item in open_items:
                    item.cancel()
                await self.item_repo.save_many(open_items)

                job.cancel(request.reason, cancelled_items=len(open_items))
                events = await self._save_and_collect(job)
        except (EntityNotFoundError, BusinessRuleViolation) as e:
            return self._error_result(CancelJobResult, request.job_id, e)

        await self.event_bus.publish_many(events)
        logger.info("Job cancelled", job_id=job.id, cancelled_items=len(open_items))
        return CancelJobResult(
            status=ResultStatus.SUCCESS,
            job_id=job.id,
            job_status=job.status.value,
            cancelled_items=len(open_items),
            message=request.reason,
        )


class RetryFailedItemsUseCase(
    _JobControlUseCase, UseCase[RetryFailedItemsRequest, RetryFailedItemsResult]
):
    """Send failed items of a running or paused job back to the first stage."""

    def __init__(
        self,
        job_repo: JobRepository,
        item_repo: ContentItemRepository,
        event_bus: EventBus,
        queue_manager: QueueManager,
        locks: Optional[KeyedLock] = None,
        queue_config: Optional[QueueConfig] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        super().__init__(job_repo, event_bus, locks)
        self.item_repo = item_repo
        self.queue_manager = queue_manager
        self.queue_config = queue_config or QueueConfig()
        self.config = config or OrchestratorConfig()

    async def execute(self, request: RetryFailedItemsRequest) -> RetryFailedItemsResult:
        try:
            async with self.locks.hold(request.job_id):
                job = await self._load(request.job_id)
                if job.status not in (JobStatus.PROCESSING, JobStatus.PAUSED):
                    job.release_failed_items(0)  # raises for the current state

                failed = await self.item_repo.get_by_job_and_status(
                    job.id, ItemStatus.FAILED
                )
                if request.item_ids is not None:
                    wanted = set(request.item_ids)
                    failed = [item for item in failed if item.id in wanted]

                retryable = [item for item in failed if item.can_retry]
                # Counters first: a mismatch must leave the items untouched
                job.release_failed_items(len(retryable))

                for item in retryable:
                    item.reset_for_retry()
                await self.item_repo.save_many(retryable)
                await self._save_and_collect(job)
        except (EntityNotFoundError, BusinessRuleViolation) as e:
            return self._error_result(RetryFailedItemsResult, request.job_id, e)

        for item in retryable:
            await self.queue_manager.add_job(
                self.queue_config.first_stage,
                {"item_id": item.id, "job_id": job.id},
                job_type=self.config.item_job_type,
                job_id=job.id,
            )

        skipped = len(failed) - len(retryable)
        logger.info(
            "Failed items retried",
            job_id=job.id,
            retried_items=len(retryable),
            skipped_items=skipped,
        )
        return RetryFailedItemsResult(
            status=ResultStatus.SUCCESS,
            job_id=job.id,
            job_status=job.status.value,
            retried_items=len(retryable),
            skipped_items=skipped,
        )
