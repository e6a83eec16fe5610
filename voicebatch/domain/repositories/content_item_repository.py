"""Content item repository protocol."""

from typing import Protocol, List

from voicebatch.domain.repositories.base import Repository
from voicebatch.domain.entities.content_item import ContentItem, ItemStatus


class ContentItemRepository(Repository[ContentItem, str], Protocol):
    """Repository protocol for ContentItem entities.

    Items are returned ordered by their position in the job.
    """

    async def get_by_job(self, job_id: str) -> List[ContentItem]:
        """Get all items of a job."""
        ...

    async def get_by_job_and_status(
        self, job_id: str, status: ItemStatus
    ) -> List[ContentItem]:
        """Get items of a job in the given status."""
        ...

    async def save_many(self, items: List[ContentItem]) -> List[ContentItem]:
        """Save several items at once."""
        ...
