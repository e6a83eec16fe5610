"""Domain events for job orchestration and error recovery.

Domain events capture state changes that other parts of the pipeline care
about. The set of event kinds is closed: every event class declares one
``EventType`` member and ``EVENT_CLASSES`` maps each member back to its
class, so dispatch never depends on class names.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type
from uuid import uuid4

from voicebatch.domain.value_objects.timestamp import Timestamp


class EventType(str, Enum):
    """Every event kind the bus can carry."""

    JOB_STARTED = "job.started"
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"
    JOB_PAUSED = "job.paused"
    JOB_RESUMED = "job.resumed"
    JOB_CANCELLED = "job.cancelled"
    ITEM_COMPLETED = "item.completed"
    ITEM_FAILED = "item.failed"
    ERROR_OCCURRED = "error.occurred"
    RETRY_SCHEDULED = "error.retry_scheduled"


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for all domain events.

    Subclasses set ``event_type`` and add their payload fields.
    """

    event_type: ClassVar[EventType]

    timestamp: Timestamp = field(default_factory=Timestamp.now)
    event_id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Payload view of the event, without bus bookkeeping."""
        data = asdict(self)
        data.pop("event_id", None)
        data["timestamp"] = self.timestamp.iso_string
        return data


# Job Events


@dataclass(frozen=True, kw_only=True)
class JobStartedEvent(DomainEvent):
    """Raised when a job moves from PENDING to PROCESSING."""

    event_type: ClassVar[EventType] = EventType.JOB_STARTED

    job_id: str


@dataclass(frozen=True, kw_only=True)
class JobCompletedEvent(DomainEvent):
    """Raised when every item of a job has been processed."""

    event_type: ClassVar[EventType] = EventType.JOB_COMPLETED

    job_id: str
    completed_items: int
    total_items: int
    failed_items: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class JobFailedEvent(DomainEvent):
    """Raised when a job is forced into FAILED."""

    event_type: ClassVar[EventType] = EventType.JOB_FAILED

    job_id: str
    error: str


@dataclass(frozen=True, kw_only=True)
class JobPausedEvent(DomainEvent):
    """Raised when a processing job is paused."""

    event_type: ClassVar[EventType] = EventType.JOB_PAUSED

    job_id: str
    job_name: str


@dataclass(frozen=True, kw_only=True)
class JobResumedEvent(DomainEvent):
    """Raised when a paused job resumes processing."""

    event_type: ClassVar[EventType] = EventType.JOB_RESUMED

    job_id: str
    job_name: str


@dataclass(frozen=True, kw_only=True)
class JobCancelledEvent(DomainEvent):
    """Raised when a job is cancelled."""

    event_type: ClassVar[EventType] = EventType.JOB_CANCELLED

    job_id: str
    reason: str
    cancelled_items: int = 0


# Item Events


@dataclass(frozen=True, kw_only=True)
class ItemCompletedEvent(DomainEvent):
    """Raised by a stage worker when an item leaves the last stage."""

    event_type: ClassVar[EventType] = EventType.ITEM_COMPLETED

    job_id: str
    item_id: str


@dataclass(frozen=True, kw_only=True)
class ItemFailedEvent(DomainEvent):
    """Raised by a stage worker when an item cannot be processed."""

    event_type: ClassVar[EventType] = EventType.ITEM_FAILED

    job_id: str
    item_id: str
    error: Optional[str] = None


# Error Events


@dataclass(frozen=True, kw_only=True)
class ErrorOccurredEvent(DomainEvent):
    """Raised whenever a pipeline failure should be audited."""

    event_type: ClassVar[EventType] = EventType.ERROR_OCCURRED

    error_id: str
    error_type: str
    error_message: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class RetryScheduledEvent(DomainEvent):
    """Raised when the recovery engine schedules a retry."""

    event_type: ClassVar[EventType] = EventType.RETRY_SCHEDULED

    error_id: str
    retry_count: int
    next_retry_at: Timestamp
    delay_ms: float

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["next_retry_at"] = self.next_retry_at.iso_string
        return data


EVENT_CLASSES: Dict[EventType, Type[DomainEvent]] = {
    EventType.JOB_STARTED: JobStartedEvent,
    EventType.JOB_COMPLETED: JobCompletedEvent,
    EventType.JOB_FAILED: JobFailedEvent,
    EventType.JOB_PAUSED: JobPausedEvent,
    EventType.JOB_RESUMED: JobResumedEvent,
    EventType.JOB_CANCELLED: JobCancelledEvent,
    EventType.ITEM_COMPLETED: ItemCompletedEvent,
    EventType.ITEM_FAILED: ItemFailedEvent,
    EventType.ERROR_OCCURRED: ErrorOccurredEvent,
    EventType.RETRY_SCHEDULED: RetryScheduledEvent,
}
