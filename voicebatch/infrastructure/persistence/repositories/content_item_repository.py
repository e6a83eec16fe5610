"""SQLAlchemy implementation of the content item repository."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from voicebatch.domain.entities.content_item import ContentItem, ItemStatus
from voicebatch.infrastructure.persistence.mappers.content_item_mapper import (
    ContentItemMapper,
)
from voicebatch.infrastructure.persistence.models.content_item import ContentItemModel
from voicebatch.infrastructure.persistence.repositories.base_repository import (
    BaseRepository,
)


class SqlAlchemyContentItemRepository(
    BaseRepository[ContentItem, ContentItemModel, str]
):
    """Content item repository backed by the ``content_items`` table."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(session_factory, ContentItemModel, ContentItemMapper())

    async def get_by_job(self, job_id: str) -> List[ContentItem]:
        stmt = (
            select(ContentItemModel)
            .where(ContentItemModel.job_id == job_id)
            .order_by(ContentItemModel.position, ContentItemModel.id)
        )
        return await self._find(stmt)

    async def get_by_job_and_status(
        self, job_id: str, status: ItemStatus
    ) -> List[ContentItem]:
        stmt = (
            select(ContentItemModel)
            .where(
                ContentItemModel.job_id == job_id,
                ContentItemModel.status == status.value,
            )
            .order_by(ContentItemModel.position, ContentItemModel.id)
        )
        return await self._find(stmt)
