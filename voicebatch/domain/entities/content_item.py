"""Content item domain entity."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import uuid4

from voicebatch.domain.entities.base import Entity
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.domain.exceptions import (
    BusinessRuleViolation,
    ErrorContext,
    InvalidStateTransition,
    InvalidValueError,
    StateTransitionInfo,
)


class ItemStatus(Enum):
    """Status of a single work item inside a job."""

    PENDING = "pending"
    VALIDATING = "validating"
    GENERATING_TEXT = "generating_text"
    CHUNKING = "chunking"
    GENERATING_AUDIO = "generating_audio"
    MERGING = "merging"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class PipelineStep(Enum):
    """Pipeline stage an item is currently in."""

    VALIDATION = "validation"
    TEXT_GENERATION = "text_generation"
    CHUNKING = "chunking"
    AUDIO_GENERATION = "audio_generation"
    AUDIO_MERGE = "audio_merge"
    UPLOAD = "upload"


PIPELINE_ORDER = (
    ItemStatus.PENDING,
    ItemStatus.VALIDATING,
    ItemStatus.GENERATING_TEXT,
    ItemStatus.CHUNKING,
    ItemStatus.GENERATING_AUDIO,
    ItemStatus.MERGING,
    ItemStatus.UPLOADING,
    ItemStatus.COMPLETED,
)

TERMINAL_ITEM_STATUSES = frozenset(
    {ItemStatus.COMPLETED, ItemStatus.FAILED, ItemStatus.SKIPPED, ItemStatus.CANCELLED}
)

# FAILED is terminal for a single attempt; reset_for_retry reopens it.
_ITEM_TRANSITIONS: Dict[ItemStatus, FrozenSet[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.VALIDATING, ItemStatus.SKIPPED}),
    ItemStatus.VALIDATING: frozenset({ItemStatus.GENERATING_TEXT, ItemStatus.SKIPPED}),
    ItemStatus.GENERATING_TEXT: frozenset({ItemStatus.CHUNKING}),
    ItemStatus.CHUNKING: frozenset({ItemStatus.GENERATING_AUDIO}),
    ItemStatus.GENERATING_AUDIO: frozenset({ItemStatus.MERGING}),
    ItemStatus.MERGING: frozenset({ItemStatus.UPLOADING}),
    ItemStatus.UPLOADING: frozenset({ItemStatus.COMPLETED}),
}

_STEP_FOR_STATUS: Dict[ItemStatus, PipelineStep] = {
    ItemStatus.VALIDATING: PipelineStep.VALIDATION,
    ItemStatus.GENERATING_TEXT: PipelineStep.TEXT_GENERATION,
    ItemStatus.CHUNKING: PipelineStep.CHUNKING,
    ItemStatus.GENERATING_AUDIO: PipelineStep.AUDIO_GENERATION,
    ItemStatus.MERGING: PipelineStep.AUDIO_MERGE,
    ItemStatus.UPLOADING: PipelineStep.UPLOAD,
}


@dataclass(kw_only=True, eq=False)
class ContentItem(Entity[str]):
    """One unit of work flowing through the pipeline stages."""

    job_id: str
    position: int = 0
    status: ItemStatus = ItemStatus.PENDING
    current_step: PipelineStep = PipelineStep.VALIDATION

    retry_count: int = 0
    max_retries: int = 3
    last_error: Optional[str] = None

    started_at: Optional[Timestamp] = None
    completed_at: Optional[Timestamp] = None

    def __post_init__(self) -> None:
        if not self.job_id:
            raise InvalidValueError(
                "Content item must belong to a job",
                context=ErrorContext(entity_type="ContentItem", field_name="job_id"),
            )
        if self.position < 0:
            raise InvalidValueError(
                "Position cannot be negative",
                context=ErrorContext(
                    entity_type="ContentItem",
                    entity_id=self.id,
                    field_name="position",
                    invalid_value=self.position,
                ),
            )

    @classmethod
    def create(cls, job_id: str, position: int, max_retries: int = 3) -> "ContentItem":
        return cls(
            id=f"item_{uuid4().hex}",
            job_id=job_id,
            position=position,
            max_retries=max_retries,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ITEM_STATUSES

    @property
    def is_processing(self) -> bool:
        return self.status in _STEP_FOR_STATUS

    @property
    def can_retry(self) -> bool:
        return self.status == ItemStatus.FAILED and self.retry_count < self.max_retries

    @property
    def progress_percentage(self) -> int:
        if self.status not in PIPELINE_ORDER:
            return 0
        return round(PIPELINE_ORDER.index(self.status) / (len(PIPELINE_ORDER) - 1) * 100)

    def _reject(self, target: ItemStatus, allowed) -> None:
        raise InvalidStateTransition(
            StateTransitionInfo(
                from_state=self.status.value,
                to_state=target.value,
                allowed_states=sorted(s.value for s in allowed),
                entity_type="ContentItem",
                entity_id=self.id,
            )
        )

    def advance_to(self, status: ItemStatus) -> None:
        """Move the item one step along the pipeline."""
        allowed = _ITEM_TRANSITIONS.get(self.status, frozenset())
        if status not in allowed:
            self._reject(status, allowed)

        if self.status == ItemStatus.PENDING:
            self.started_at = Timestamp.now()
        self.status = status
        if status in _STEP_FOR_STATUS:
            self.current_step = _STEP_FOR_STATUS[status]
        if status in TERMINAL_ITEM_STATUSES:
            self.completed_at = Timestamp.now()
        self._touch_updated_at()

    def fail(self, error: str) -> None:
        if self.is_terminal:
            self._reject(ItemStatus.FAILED, frozenset(_ITEM_TRANSITIONS))
        self.status = ItemStatus.FAILED
        self.last_error = error
        self.completed_at = Timestamp.now()
        self._touch_updated_at()

    def cancel(self) -> None:
        if self.is_terminal:
            self._reject(ItemStatus.CANCELLED, frozenset(_ITEM_TRANSITIONS))
        self.status = ItemStatus.CANCELLED
        self.completed_at = Timestamp.now()
        self._touch_updated_at()

    def reset_for_retry(self) -> None:
        """Reopen a FAILED item for another pass through the pipeline."""
        if self.status != ItemStatus.FAILED:
            self._reject(ItemStatus.PENDING, frozenset({ItemStatus.FAILED}))
        if self.retry_count >= self.max_retries:
            raise BusinessRuleViolation(
                f"Max retries ({self.max_retries}) exceeded",
                context=ErrorContext(
                    entity_type="ContentItem",
                    entity_id=self.id,
                    field_name="retry_count",
                    invalid_value=self.retry_count,
                ),
            )
        self.retry_count += 1
        self.status = ItemStatus.PENDING
        self.current_step = PipelineStep.VALIDATION
        self.last_error = None
        self.completed_at = None
        self._touch_updated_at()
