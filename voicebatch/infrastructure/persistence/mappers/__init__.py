from voicebatch.infrastructure.persistence.mappers.base import Mapper
from voicebatch.infrastructure.persistence.mappers.job_mapper import JobMapper
from voicebatch.infrastructure.persistence.mappers.content_item_mapper import (
    ContentItemMapper,
)
from voicebatch.infrastructure.persistence.mappers.error_log_mapper import ErrorLogMapper

__all__ = ["Mapper", "JobMapper", "ContentItemMapper", "ErrorLogMapper"]
