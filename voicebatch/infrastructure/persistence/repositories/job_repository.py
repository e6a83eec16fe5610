"""SQLAlchemy implementation of the job repository."""

from sqlalchemy.ext.asyncio import async_sessionmaker

from voicebatch.domain.entities.job import Job
from voicebatch.infrastructure.persistence.mappers.job_mapper import JobMapper
from voicebatch.infrastructure.persistence.models.job import JobModel
from voicebatch.infrastructure.persistence.repositories.base_repository import (
    BaseRepository,
)


class SqlAlchemyJobRepository(BaseRepository[Job, JobModel, str]):
    """Job repository backed by the ``jobs`` table."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(session_factory, JobModel, JobMapper())
