"""Job repository protocol."""

from typing import Protocol

from voicebatch.domain.repositories.base import Repository
from voicebatch.domain.entities.job import Job


class JobRepository(Repository[Job, str], Protocol):
    """Repository protocol for Job aggregates."""

    async def exists(self, id: str) -> bool:
        """Check if a job exists."""
        ...
