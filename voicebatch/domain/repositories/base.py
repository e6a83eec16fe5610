"""Base repository protocol."""

from typing import Protocol, TypeVar, Generic, Optional

from voicebatch.domain.entities.base import Entity


T = TypeVar("T", bound=Entity)
ID = TypeVar("ID")


class Repository(Protocol, Generic[T, ID]):
    """Base repository protocol for entity persistence.

    Every repository can load and store its entity by id.
    """

    async def get(self, id: ID) -> Optional[T]:
        """Get entity by ID."""
        ...

    async def save(self, entity: T) -> T:
        """Save entity (create or update)."""
        ...
