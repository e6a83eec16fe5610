"""Error log repository protocol."""

from typing import Protocol, List

from voicebatch.domain.repositories.base import Repository
from voicebatch.domain.entities.error_log import ErrorLog
from voicebatch.domain.value_objects.timestamp import Timestamp


class ErrorLogRepository(Repository[ErrorLog, str], Protocol):
    """Repository protocol for ErrorLog entities."""

    async def find_all(self) -> List[ErrorLog]:
        """Get every error log."""
        ...

    async def find_resolved_before(self, cutoff: Timestamp) -> List[ErrorLog]:
        """Get recovered or failed logs resolved before ``cutoff``."""
        ...

    async def delete(self, id: str) -> None:
        """Delete an error log by ID."""
        ...
