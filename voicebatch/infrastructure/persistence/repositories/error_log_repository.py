"""SQLAlchemy implementation of the error log repository."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from voicebatch.domain.entities.error_log import ErrorLog, ErrorLogStatus
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.persistence.mappers.error_log_mapper import ErrorLogMapper
from voicebatch.infrastructure.persistence.models.error_log import ErrorLogModel
from voicebatch.infrastructure.persistence.repositories.base_repository import (
    BaseRepository,
)


class SqlAlchemyErrorLogRepository(BaseRepository[ErrorLog, ErrorLogModel, str]):
    """Error log repository backed by the ``error_logs`` table."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(session_factory, ErrorLogModel, ErrorLogMapper())

    async def find_all(self) -> List[ErrorLog]:
        return await self._find(select(ErrorLogModel).order_by(ErrorLogModel.occurred_at))

    async def find_resolved_before(self, cutoff: Timestamp) -> List[ErrorLog]:
        stmt = select(ErrorLogModel).where(
            ErrorLogModel.status.in_(
                [ErrorLogStatus.RECOVERED.value, ErrorLogStatus.FAILED.value]
            ),
            ErrorLogModel.resolved_at.is_not(None),
            ErrorLogModel.resolved_at < cutoff.value,
        )
        return await self._find(stmt)
