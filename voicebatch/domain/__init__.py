"""Domain layer for the voicebatch orchestration core.

This layer contains the job state machine, the error audit trail and the
retry policy, independent of queues, databases or event transport.
"""

from voicebatch.domain.entities import (
    Job,
    JobStatus,
    ContentItem,
    ItemStatus,
    ErrorLog,
    ErrorLogStatus,
)
from voicebatch.domain.value_objects import Timestamp

__all__ = [
    "Job",
    "JobStatus",
    "ContentItem",
    "ItemStatus",
    "ErrorLog",
    "ErrorLogStatus",
    "Timestamp",
]
