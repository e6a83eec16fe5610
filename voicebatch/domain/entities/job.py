"""Job domain entity."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from voicebatch.domain.entities.base import AggregateRoot
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.domain.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    InvalidValueError,
    StateTransitionInfo,
    ErrorContext,
)
from voicebatch.domain.events import (
    JobCancelledEvent,
    JobCompletedEvent,
    JobFailedEvent,
    JobPausedEvent,
    JobResumedEvent,
    JobStartedEvent,
)


class JobStatus(Enum):
    """Job processing status."""

    DRAFT = "draft"
    PENDING = "pending"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)

# Allowed source states for each target state.
_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.PENDING: frozenset({JobStatus.DRAFT}),
    JobStatus.PROCESSING: frozenset({JobStatus.PENDING, JobStatus.PAUSED}),
    JobStatus.PAUSED: frozenset({JobStatus.PROCESSING}),
    JobStatus.COMPLETED: frozenset({JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.PROCESSING}),
    JobStatus.CANCELLED: frozenset(
        {JobStatus.DRAFT, JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.PAUSED}
    ),
    JobStatus.DRAFT: frozenset(),
}


@dataclass(kw_only=True, eq=False)
class Job(AggregateRoot[str]):
    """Aggregate root for a batch of content items.

    A job is created in DRAFT by an external creation flow, submitted to
    PENDING once its items exist, and afterwards mutated only by the
    orchestrator and the job-control use cases. Counter invariants:
    ``0 <= failed_items <= completed_items <= total_items``.
    """

    name: str
    status: JobStatus = JobStatus.DRAFT

    total_items: int = 0
    completed_items: int = 0
    failed_items: int = 0

    started_at: Optional[Timestamp] = None
    completed_at: Optional[Timestamp] = None

    # Opaque provider configuration
    voice_settings: Optional[Dict[str, Any]] = None
    prompt_settings: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidValueError(
                "Job name is required",
                context=ErrorContext(entity_type="Job", field_name="name"),
            )
        if self.total_items < 0:
            raise InvalidValueError(
                "Total items cannot be negative",
                context=ErrorContext(
                    entity_type="Job",
                    entity_id=self.id,
                    field_name="total_items",
                    invalid_value=self.total_items,
                ),
            )
        if not 0 <= self.failed_items <= self.completed_items <= self.total_items:
            raise BusinessRuleViolation(
                "Job counters must satisfy 0 <= failed <= completed <= total",
                context=ErrorContext(
                    entity_type="Job",
                    entity_id=self.id,
                    extra={
                        "total_items": self.total_items,
                        "completed_items": self.completed_items,
                        "failed_items": self.failed_items,
                    },
                ),
            )

    @classmethod
    def create(
        cls,
        name: str,
        total_items: int = 0,
        voice_settings: Optional[Dict[str, Any]] = None,
        prompt_settings: Optional[Dict[str, Any]] = None,
    ) -> "Job":
        """Factory for a new DRAFT job with a generated id."""
        return cls(
            id=f"job_{uuid4().hex}",
            name=name.strip() if name else name,
            total_items=total_items,
            voice_settings=voice_settings,
            prompt_settings=prompt_settings,
        )

    # Derived state

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def progress(self) -> float:
        """Fraction of items processed, guarded against empty jobs."""
        return self.completed_items / max(self.total_items, 1)

    @property
    def all_items_processed(self) -> bool:
        return self.completed_items == self.total_items

    def failure_threshold(self, ratio: float) -> int:
        """Number of failed items that fails the whole job."""
        # Round first: 10 * 0.3 is 3.0000000000000004 in binary floating point
        return math.ceil(round(self.total_items * ratio, 9))

    # State machine

    def _transition(self, target: JobStatus) -> None:
        allowed = _TRANSITIONS[target]
        if self.status not in allowed:
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=target.value,
                    allowed_states=sorted(s.value for s in allowed),
                    entity_type="Job",
                    entity_id=self.id,
                )
            )
        self.status = target
        if target in TERMINAL_STATUSES:
            self.completed_at = Timestamp.now()
        self._touch_updated_at()

    def submit(self, total_items: Optional[int] = None) -> None:
        """Move a DRAFT job to PENDING, fixing its item count."""
        if total_items is not None:
            if self.status != JobStatus.DRAFT:
                raise BusinessRuleViolation(
                    "Total items can only be set while the job is a draft",
                    context=ErrorContext(entity_type="Job", entity_id=self.id),
                )
            if total_items < self.total_items:
                raise BusinessRuleViolation(
                    "Total items can never decrease",
                    context=ErrorContext(
                        entity_type="Job",
                        entity_id=self.id,
                        field_name="total_items",
                        invalid_value=total_items,
                    ),
                )
            self.total_items = total_items
        self._transition(JobStatus.PENDING)

    def start(self) -> None:
        """PENDING to PROCESSING.

        Only the status changes here; the caller stamps ``started_at``.
        """
        if self.status != JobStatus.PENDING:
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=JobStatus.PROCESSING.value,
                    allowed_states=[JobStatus.PENDING.value],
                    entity_type="Job",
                    entity_id=self.id,
                )
            )
        self._transition(JobStatus.PROCESSING)
        self.add_domain_event(JobStartedEvent(job_id=self.id))

    def pause(self) -> None:
        self._transition(JobStatus.PAUSED)
        self.add_domain_event(JobPausedEvent(job_id=self.id, job_name=self.name))

    def resume(self) -> None:
        if self.status != JobStatus.PAUSED:
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=JobStatus.PROCESSING.value,
                    allowed_states=[JobStatus.PAUSED.value],
                    entity_type="Job",
                    entity_id=self.id,
                )
            )
        self._transition(JobStatus.PROCESSING)
        self.add_domain_event(JobResumedEvent(job_id=self.id, job_name=self.name))

    def complete(self) -> None:
        self._transition(JobStatus.COMPLETED)
        self.add_domain_event(
            JobCompletedEvent(
                job_id=self.id,
                completed_items=self.completed_items,
                total_items=self.total_items,
                failed_items=self.failed_items,
            )
        )

    def fail(self, error: str) -> None:
        self._transition(JobStatus.FAILED)
        self.add_domain_event(JobFailedEvent(job_id=self.id, error=error))

    def cancel(self, reason: str = "Cancelled by user", cancelled_items: int = 0) -> None:
        self._transition(JobStatus.CANCELLED)
        self.add_domain_event(
            JobCancelledEvent(
                job_id=self.id, reason=reason, cancelled_items=cancelled_items
            )
        )

    # Counters

    def _ensure_accepts_item_results(self) -> None:
        if self.status not in (JobStatus.PROCESSING, JobStatus.PAUSED):
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=self.status.value,
                    allowed_states=[
                        JobStatus.PROCESSING.value,
                        JobStatus.PAUSED.value,
                    ],
                    entity_type="Job",
                    entity_id=self.id,
                )
            )
        if self.completed_items >= self.total_items:
            raise BusinessRuleViolation(
                f"Job already processed all {self.total_items} items",
                context=ErrorContext(
                    entity_type="Job",
                    entity_id=self.id,
                    extra={"completed_items": self.completed_items},
                ),
            )

    def record_item_completed(self) -> None:
        """Count one successfully processed item."""
        self._ensure_accepts_item_results()
        self.completed_items += 1
        self._touch_updated_at()

    def record_item_failed(self) -> None:
        """Count one failed item; it still counts as processed."""
        self._ensure_accepts_item_results()
        self.completed_items += 1
        self.failed_items += 1
        self._touch_updated_at()

    def release_failed_items(self, count: int) -> None:
        """Return ``count`` failed items to the unprocessed pool for a retry."""
        if self.status not in (JobStatus.PROCESSING, JobStatus.PAUSED):
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=self.status.value,
                    allowed_states=[
                        JobStatus.PROCESSING.value,
                        JobStatus.PAUSED.value,
                    ],
                    entity_type="Job",
                    entity_id=self.id,
                )
            )
        if not 0 <= count <= self.failed_items:
            raise BusinessRuleViolation(
                f"Cannot release {count} of {self.failed_items} failed items",
                context=ErrorContext(
                    entity_type="Job",
                    entity_id=self.id,
                    field_name="failed_items",
                    invalid_value=count,
                ),
            )
        self.failed_items -= count
        self.completed_items -= count
        self._touch_updated_at()

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for API layers."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "total_items": self.total_items,
            "completed_items": self.completed_items,
            "failed_items": self.failed_items,
            "progress": self.progress,
            "created_at": self.created_at.iso_string,
            "updated_at": self.updated_at.iso_string,
            "started_at": self.started_at.iso_string if self.started_at else None,
            "completed_at": self.completed_at.iso_string if self.completed_at else None,
            "voice_settings": self.voice_settings,
            "prompt_settings": self.prompt_settings,
        }
