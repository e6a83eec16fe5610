"""Dictionary-backed repositories for tests and single-process runs.

Entities are deep-copied on the way in and out, so callers never share
state with the store, matching what a database round trip gives.
"""

import copy
from typing import Dict, Generic, List, Optional, TypeVar

from voicebatch.domain.entities.base import AggregateRoot, Entity
from voicebatch.domain.entities.content_item import ContentItem, ItemStatus
from voicebatch.domain.entities.error_log import ErrorLog
from voicebatch.domain.entities.job import Job
from voicebatch.domain.value_objects.timestamp import Timestamp


T = TypeVar("T", bound=Entity)


def _snapshot(entity: T) -> T:
    stored = copy.deepcopy(entity)
    if isinstance(stored, AggregateRoot):
        stored.clear_domain_events()
    return stored


class InMemoryRepository(Generic[T]):
    """Common id-keyed storage."""

    def __init__(self) -> None:
        self._store: Dict[str, T] = {}

    async def get(self, id: str) -> Optional[T]:
        entity = self._store.get(id)
        return copy.deepcopy(entity) if entity is not None else None

    async def save(self, entity: T) -> T:
        self._store[entity.id] = _snapshot(entity)
        return entity

    async def exists(self, id: str) -> bool:
        return id in self._store

    async def delete(self, id: str) -> None:
        self._store.pop(id, None)

    def __len__(self) -> int:
        return len(self._store)


class InMemoryJobRepository(InMemoryRepository[Job]):
    pass


class InMemoryContentItemRepository(InMemoryRepository[ContentItem]):
    async def get_by_job(self, job_id: str) -> List[ContentItem]:
        items = [item for item in self._store.values() if item.job_id == job_id]
        return [copy.deepcopy(item) for item in sorted(items, key=lambda i: i.position)]

    async def get_by_job_and_status(
        self, job_id: str, status: ItemStatus
    ) -> List[ContentItem]:
        return [item for item in await self.get_by_job(job_id) if item.status == status]

    async def save_many(self, items: List[ContentItem]) -> List[ContentItem]:
        for item in items:
            await self.save(item)
        return items


class InMemoryErrorLogRepository(InMemoryRepository[ErrorLog]):
    async def find_all(self) -> List[ErrorLog]:
        return [copy.deepcopy(log) for log in self._store.values()]

    async def find_resolved_before(self, cutoff: Timestamp) -> List[ErrorLog]:
        return [
            copy.deepcopy(log)
            for log in self._store.values()
            if log.is_resolved
            and log.resolved_at is not None
            and log.resolved_at.is_before(cutoff)
        ]
