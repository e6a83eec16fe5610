"""Error recovery application service.

Turns ``error.occurred`` events into persisted error logs, schedules
retries for transient failures with exponential backoff, and executes
those retries when the retry queue hands them back.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from voicebatch.domain.entities.error_log import (
    MAX_MESSAGE_LENGTH,
    ErrorLog,
    ErrorLogStatus,
)
from voicebatch.domain.events import ErrorOccurredEvent, EventType, RetryScheduledEvent
from voicebatch.domain.exceptions import EntityNotFoundError, RecoveryError
from voicebatch.domain.protocols.event_bus import EventBus, Unsubscribe
from voicebatch.domain.protocols.queue import QueueManager
from voicebatch.domain.repositories.error_log_repository import ErrorLogRepository
from voicebatch.domain.services.retry_policy import ErrorType, RetryPolicy
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.config import QueueConfig, RetryConfig
from voicebatch.infrastructure.observability.logfire_decorators import traced


logger = structlog.get_logger(__name__)

# Error types whose original operation is re-run directly
_RETRY_DIRECTLY = frozenset(
    {
        ErrorType.NETWORK_ERROR.value,
        ErrorType.TIMEOUT.value,
        ErrorType.SERVICE_UNAVAILABLE.value,
        ErrorType.TRANSIENT_ERROR.value,
    }
)


def _clip_message(message: str) -> str:
    """Keep oversized provider messages within what an error log stores."""
    return message[:MAX_MESSAGE_LENGTH]


@dataclass(frozen=True)
class ErrorStats:
    """Aggregate view over every error log."""

    total_errors: int
    retryable_errors: int
    recovered_errors: int
    failed_errors: int
    pending_retries: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_errors": self.total_errors,
            "retryable_errors": self.retryable_errors,
            "recovered_errors": self.recovered_errors,
            "failed_errors": self.failed_errors,
            "pending_retries": self.pending_retries,
        }


class ErrorRecoveryService:
    """Application service for error audit and retry scheduling.

    It is the only writer of error logs.
    """

    def __init__(
        self,
        error_repo: ErrorLogRepository,
        event_bus: EventBus,
        queue_manager: QueueManager,
        policy: Optional[RetryPolicy] = None,
        config: Optional[RetryConfig] = None,
        queue_config: Optional[QueueConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the recovery service.

        Args:
            error_repo: Repository for error logs
            event_bus: Bus for error events
            queue_manager: Owner of the retry queue
            policy: Backoff policy; built from ``config`` when omitted
            config: Retry tuning
            queue_config: Name of the retry queue
            sleep: Coroutine used for the rate-limit cooldown
        """
        self.error_repo = error_repo
        self.event_bus = event_bus
        self.queue_manager = queue_manager
        self.config = config or RetryConfig()
        self.queue_config = queue_config or QueueConfig()
        self.policy = policy or RetryPolicy(
            base_delay_ms=self.config.base_delay_ms,
            max_delay_ms=self.config.max_delay_ms,
            jitter_ratio=self.config.jitter_ratio,
        )
        self._sleep = sleep
        self._subscriptions: List[Unsubscribe] = []

    def register(self) -> None:
        if not self._subscriptions:
            self._subscriptions = [
                self.event_bus.subscribe(
                    EventType.ERROR_OCCURRED, self.handle_error_occurred
                )
            ]

    def unregister(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

    @traced(name="recovery.handle_error_occurred")
    async def handle_error_occurred(self, event: ErrorOccurredEvent) -> None:
        """Log the error, then schedule a retry or fail it outright.

        Runs under the bus, so failures are logged and not raised.
        """
        try:
            if await self.error_repo.get(event.error_id) is not None:
                logger.warning("Duplicate error event ignored", error_id=event.error_id)
                return

            error_log = ErrorLog(
                id=event.error_id,
                error_type=event.error_type,
                message=_clip_message(event.error_message),
                context=dict(event.context),
                occurred_at=event.timestamp,
            )
            await self.error_repo.save(error_log)

            logger.info(
                "Error logged",
                error_id=error_log.id,
                error_type=error_log.error_type,
                context=error_log.context,
            )

            if self.policy.is_retryable(error_log.error_type):
                delay_ms = self.policy.calculate_retry_delay(error_log.retry_count)
                await self.schedule_retry(error_log.id, delay_ms)
            else:
                error_log.mark_failed(error_log.message)
                await self.error_repo.save(error_log)
                logger.warning(
                    "Non-retryable error marked failed",
                    error_id=error_log.id,
                    error_type=error_log.error_type,
                )
        except Exception:
            logger.error(
                "Failed to handle error event", error_id=event.error_id, exc_info=True
            )

    @traced(name="recovery.schedule_retry")
    async def schedule_retry(
        self, error_id: str, delay_ms: Optional[float] = None
    ) -> ErrorLog:
        """Schedule the next retry of a logged error.

        Args:
            error_id: Error log to retry
            delay_ms: Delay before the retry; computed from the policy when omitted

        Returns:
            The updated error log

        Raises:
            RecoveryError: If the log is missing or cannot be scheduled
        """
        error_log = None
        try:
            error_log = await self.error_repo.get(error_id)
            if error_log is None:
                raise EntityNotFoundError("ErrorLog", error_id)

            if delay_ms is None:
                delay_ms = self.policy.calculate_retry_delay(error_log.retry_count)

            error_log.mark_retry_scheduled(Timestamp.now().add_milliseconds(delay_ms))
            await self.error_repo.save(error_log)

            await self.event_bus.publish(
                RetryScheduledEvent(
                    error_id=error_id,
                    retry_count=error_log.retry_count,
                    next_retry_at=error_log.next_retry_at,
                    delay_ms=delay_ms,
                )
            )

            await self.queue_manager.add_job(
                self.queue_config.retry_queue,
                {"error_id": error_id, "retry_count": error_log.retry_count},
                job_type="retry",
                delay_ms=delay_ms,
                max_attempts=1,
            )
        except Exception as e:
            logger.error("Failed to schedule retry", error_id=error_id, exc_info=True)
            if error_log is not None and error_log.status == ErrorLogStatus.RETRY_SCHEDULED:
                await self._abandon_retry(error_log, e)
            raise RecoveryError("Failed to schedule retry", error_id=error_id) from e

        logger.info(
            "Retry scheduled",
            error_id=error_id,
            retry_count=error_log.retry_count,
            delay_ms=round(delay_ms, 1),
        )
        return error_log

    @traced(name="recovery.retry_error")
    async def retry_error(self, error_id: str) -> ErrorLog:
        """Execute a scheduled retry.

        Args:
            error_id: Error log to retry

        Returns:
            The error log, now recovered or failed

        Raises:
            EntityNotFoundError: If the log does not exist
            RecoveryError: If the retry itself fails; the log is marked failed
        """
        error_log = await self.error_repo.get(error_id)
        if error_log is None:
            raise EntityNotFoundError("ErrorLog", error_id)

        try:
            error_log.mark_retrying()
            await self.error_repo.save(error_log)

            if error_log.error_type in _RETRY_DIRECTLY:
                await self._retry_original_operation(error_log)
            elif error_log.error_type == ErrorType.RATE_LIMIT.value:
                await self._sleep(self.config.rate_limit_cooldown_seconds)
                await self._retry_original_operation(error_log)
            else:
                error_log.mark_failed(
                    f"Error type {error_log.error_type!r} cannot be retried"
                )
                await self.error_repo.save(error_log)
        except Exception as e:
            logger.error("Retry failed", error_id=error_id, exc_info=True)
            if not error_log.is_resolved:
                error_log.mark_failed(str(e) or type(e).__name__)
                await self.error_repo.save(error_log)
            raise RecoveryError("Failed to retry error", error_id=error_id) from e

        logger.info(
            "Retry finished", error_id=error_id, status=error_log.status.value
        )
        return error_log

    async def _abandon_retry(self, error_log: ErrorLog, error: Exception) -> None:
        """Fail a log whose retry never reached the retry queue."""
        reason = str(error) or type(error).__name__
        error_log.mark_failed(f"Retry could not be scheduled: {reason}")
        try:
            await self.error_repo.save(error_log)
        except Exception:
            logger.error(
                "Failed to mark unscheduled retry as failed",
                error_id=error_log.id,
                exc_info=True,
            )

    async def _retry_original_operation(self, error_log: ErrorLog) -> None:
        """Re-enqueue the failed work when the context says where it came from."""
        queue_name = error_log.context.get("queue")
        payload = error_log.context.get("payload")
        if queue_name and isinstance(payload, dict):
            await self.queue_manager.add_job(
                queue_name,
                payload,
                job_type=error_log.context.get("job_type"),
                job_id=error_log.context.get("job_id"),
            )
            logger.info(
                "Original operation re-enqueued",
                error_id=error_log.id,
                queue=queue_name,
            )

        error_log.mark_recovered()
        await self.error_repo.save(error_log)

    async def get_error_stats(self) -> ErrorStats:
        logs = await self.error_repo.find_all()
        return ErrorStats(
            total_errors=len(logs),
            retryable_errors=sum(
                1 for log in logs if self.policy.is_retryable(log.error_type)
            ),
            recovered_errors=sum(
                1 for log in logs if log.status == ErrorLogStatus.RECOVERED
            ),
            failed_errors=sum(1 for log in logs if log.status == ErrorLogStatus.FAILED),
            pending_retries=sum(
                1 for log in logs if log.status == ErrorLogStatus.RETRY_SCHEDULED
            ),
        )

    @traced(name="recovery.cleanup_resolved_errors")
    async def cleanup_resolved_errors(self, max_age_days: Optional[int] = None) -> int:
        """Delete recovered and failed logs resolved more than ``max_age_days`` ago.

        Returns:
            Number of deleted logs
        """
        if max_age_days is None:
            max_age_days = self.config.error_retention_days
        cutoff = Timestamp.now().subtract_days(max_age_days)

        resolved = await self.error_repo.find_resolved_before(cutoff)
        for error_log in resolved:
            await self.error_repo.delete(error_log.id)

        logger.info(
            "Resolved errors cleaned up",
            deleted=len(resolved),
            max_age_days=max_age_days,
        )
        return len(resolved)
