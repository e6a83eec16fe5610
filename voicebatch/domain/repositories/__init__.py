"""Repository protocols for the domain layer.

Concrete implementations live in ``voicebatch.infrastructure.persistence``.
"""

from voicebatch.domain.repositories.base import Repository
from voicebatch.domain.repositories.job_repository import JobRepository
from voicebatch.domain.repositories.content_item_repository import ContentItemRepository
from voicebatch.domain.repositories.error_log_repository import ErrorLogRepository

__all__ = [
    "Repository",
    "JobRepository",
    "ContentItemRepository",
    "ErrorLogRepository",
]
