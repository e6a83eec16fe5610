"""Error log domain entity.

An error log is the audit record of one pipeline failure and of every
recovery attempt made for it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from uuid import uuid4

from voicebatch.domain.entities.base import Entity
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.domain.exceptions import (
    ErrorContext,
    InvalidStateTransition,
    InvalidValueError,
    StateTransitionInfo,
)


MAX_MESSAGE_LENGTH = 5000


class ErrorLogStatus(Enum):
    """Recovery status of a logged error."""

    LOGGED = "logged"
    RETRY_SCHEDULED = "retry_scheduled"
    RETRYING = "retrying"
    RECOVERED = "recovered"
    FAILED = "failed"


_ERROR_LOG_TRANSITIONS: Dict[ErrorLogStatus, FrozenSet[ErrorLogStatus]] = {
    ErrorLogStatus.LOGGED: frozenset(
        {ErrorLogStatus.RETRY_SCHEDULED, ErrorLogStatus.FAILED}
    ),
    ErrorLogStatus.RETRY_SCHEDULED: frozenset(
        {ErrorLogStatus.RETRYING, ErrorLogStatus.FAILED}
    ),
    ErrorLogStatus.RETRYING: frozenset(
        {
            ErrorLogStatus.RECOVERED,
            ErrorLogStatus.FAILED,
            ErrorLogStatus.RETRY_SCHEDULED,
        }
    ),
    ErrorLogStatus.RECOVERED: frozenset(),
    ErrorLogStatus.FAILED: frozenset(),
}


@dataclass(kw_only=True, eq=False)
class ErrorLog(Entity[str]):
    """Audit trail entry for a failure and its recovery."""

    error_type: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    occurred_at: Timestamp = field(default_factory=Timestamp.now)

    status: ErrorLogStatus = ErrorLogStatus.LOGGED
    retry_count: int = 0
    next_retry_at: Optional[Timestamp] = None
    resolved_at: Optional[Timestamp] = None
    final_error: Optional[str] = None
    status_history: List[ErrorLogStatus] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.error_type or not self.error_type.strip():
            raise InvalidValueError(
                "Error type is required",
                context=ErrorContext(entity_type="ErrorLog", field_name="error_type"),
            )
        if len(self.message) > MAX_MESSAGE_LENGTH:
            raise InvalidValueError(
                f"Error message cannot exceed {MAX_MESSAGE_LENGTH} characters",
                context=ErrorContext(
                    entity_type="ErrorLog", entity_id=self.id, field_name="message"
                ),
            )
        self.error_type = self.error_type.strip().lower()
        if not self.status_history:
            self.status_history = [self.status]

    @classmethod
    def create(
        cls,
        error_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        occurred_at: Optional[Timestamp] = None,
    ) -> "ErrorLog":
        return cls(
            id=f"error_{uuid4().hex}",
            error_type=error_type,
            message=message,
            context=dict(context or {}),
            occurred_at=occurred_at or Timestamp.now(),
        )

    @property
    def is_resolved(self) -> bool:
        return self.status in (ErrorLogStatus.RECOVERED, ErrorLogStatus.FAILED)

    def _transition(self, target: ErrorLogStatus) -> None:
        allowed = _ERROR_LOG_TRANSITIONS[self.status]
        if target not in allowed:
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=target.value,
                    allowed_states=sorted(
                        source.value
                        for source, targets in _ERROR_LOG_TRANSITIONS.items()
                        if target in targets
                    ),
                    entity_type="ErrorLog",
                    entity_id=self.id,
                )
            )
        self.status = target
        self.status_history.append(target)
        self._touch_updated_at()

    def mark_retry_scheduled(self, next_retry_at: Timestamp) -> None:
        """Schedule the next attempt. This is the only place retries are counted."""
        self._transition(ErrorLogStatus.RETRY_SCHEDULED)
        self.retry_count += 1
        self.next_retry_at = next_retry_at

    def mark_retrying(self) -> None:
        self._transition(ErrorLogStatus.RETRYING)

    def mark_recovered(self) -> None:
        self._transition(ErrorLogStatus.RECOVERED)
        self.next_retry_at = None
        self.resolved_at = Timestamp.now()

    def mark_failed(self, final_error: str) -> None:
        self._transition(ErrorLogStatus.FAILED)
        self.final_error = final_error
        self.next_retry_at = None
        self.resolved_at = Timestamp.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
            "occurred_at": self.occurred_at.iso_string,
            "status": self.status.value,
            "retry_count": self.retry_count,
            "next_retry_at": self.next_retry_at.iso_string if self.next_retry_at else None,
            "resolved_at": self.resolved_at.iso_string if self.resolved_at else None,
            "final_error": self.final_error,
            "status_history": [s.value for s in self.status_history],
        }
