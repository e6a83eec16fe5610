"""SQLAlchemy models.

Importing this package registers every table on ``Base.metadata``.
"""

from voicebatch.infrastructure.persistence.models.base import Base, TimestampMixin
from voicebatch.infrastructure.persistence.models.job import JobModel
from voicebatch.infrastructure.persistence.models.content_item import ContentItemModel
from voicebatch.infrastructure.persistence.models.error_log import ErrorLogModel

__all__ = [
    "Base",
    "TimestampMixin",
    "JobModel",
    "ContentItemModel",
    "ErrorLogModel",
]
