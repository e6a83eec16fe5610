"""Base repository implementation with mixin-based architecture.

Repositories are long-lived and shared by concurrent handlers, so they
hold a session factory and open one short session per operation instead
of sharing an ``AsyncSession``.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, List, Optional, Type, TypeVar

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from voicebatch.domain.entities.base import Entity
from voicebatch.infrastructure.persistence.mappers.base import Mapper
from voicebatch.infrastructure.persistence.models.base import Base


DomainEntity = TypeVar("DomainEntity", bound=Entity)
PersistenceModel = TypeVar("PersistenceModel", bound=Base)
ID = TypeVar("ID")


class SessionMixin:
    """Mixin providing per-operation sessions."""

    session_factory: async_sessionmaker

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Session whose transaction commits on exit and rolls back on error."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session


class CRUDMixin(SessionMixin):
    """Mixin providing basic CRUD operations."""

    model_class: Type[PersistenceModel]
    mapper: Mapper

    async def get(self, id: ID) -> Optional[DomainEntity]:
        """Get entity by ID."""
        async with self.read_session() as session:
            model = await session.get(self.model_class, id)
            return self.mapper.to_domain(model) if model else None

    async def save(self, entity: DomainEntity) -> DomainEntity:
        """Save entity (create or update)."""
        async with self.write_session() as session:
            model = await self._upsert(session, entity)
            return self.mapper.to_domain(model)

    async def save_many(self, entities: List[DomainEntity]) -> List[DomainEntity]:
        """Save several entities in one transaction."""
        if not entities:
            return []
        async with self.write_session() as session:
            models = [await self._upsert(session, entity) for entity in entities]
            return self.mapper.to_domain_list(models)

    async def delete(self, id: ID) -> None:
        """Delete entity by ID; missing ids are ignored."""
        async with self.write_session() as session:
            model = await session.get(self.model_class, id)
            if model is not None:
                await session.delete(model)

    async def _upsert(self, session: AsyncSession, entity: DomainEntity) -> PersistenceModel:
        model = await session.get(self.model_class, entity.id)
        if model is None:
            model = self.mapper.to_persistence(entity)
            session.add(model)
        else:
            self.mapper.update_model(model, entity)
        await session.flush()
        return model


class QueryMixin(SessionMixin):
    """Mixin providing query capabilities."""

    model_class: Type[PersistenceModel]
    mapper: Mapper

    async def exists(self, id: ID) -> bool:
        """Check if entity exists."""
        async with self.read_session() as session:
            result = await session.execute(
                select(exists().where(self.model_class.id == id))
            )
            return bool(result.scalar())

    async def count(self) -> int:
        """Count total entities."""
        async with self.read_session() as session:
            result = await session.execute(
                select(func.count()).select_from(self.model_class)
            )
            return result.scalar() or 0

    async def find_all(self) -> List[DomainEntity]:
        """Find all entities."""
        return await self._find(select(self.model_class))

    async def _find(self, stmt) -> List[DomainEntity]:
        async with self.read_session() as session:
            result = await session.execute(stmt)
            return self.mapper.to_domain_list(list(result.scalars().all()))


class BaseRepository(CRUDMixin, QueryMixin, Generic[DomainEntity, PersistenceModel, ID]):
    """Base repository with mixin-based architecture."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        model_class: Type[PersistenceModel],
        mapper: Mapper,
    ):
        """Initialize repository with a session factory, model class and mapper."""
        self.session_factory = session_factory
        self.model_class = model_class
        self.mapper = mapper
