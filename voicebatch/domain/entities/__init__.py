"""Domain entities.

Entities are domain objects with identity. Unlike value objects,
entities are defined by their ID rather than their attributes.
"""

from voicebatch.domain.entities.base import Entity, AggregateRoot
from voicebatch.domain.entities.job import Job, JobStatus, TERMINAL_STATUSES
from voicebatch.domain.entities.content_item import (
    ContentItem,
    ItemStatus,
    PipelineStep,
)
from voicebatch.domain.entities.error_log import ErrorLog, ErrorLogStatus

__all__ = [
    # Base
    "Entity",
    "AggregateRoot",
    # Job
    "Job",
    "JobStatus",
    "TERMINAL_STATUSES",
    # Content items
    "ContentItem",
    "ItemStatus",
    "PipelineStep",
    # Error logs
    "ErrorLog",
    "ErrorLogStatus",
]
