"""Mapping utilities for domain entity to persistence model conversion."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from voicebatch.domain.entities.base import Entity
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.persistence.models.base import Base


DomainEntity = TypeVar("DomainEntity", bound=Entity)
PersistenceModel = TypeVar("PersistenceModel", bound=Base)


class Mapper(ABC, Generic[DomainEntity, PersistenceModel]):
    """Two-way conversion between a domain entity and its model."""

    @abstractmethod
    def to_domain(self, model: PersistenceModel) -> DomainEntity:
        """Convert persistence model to domain entity."""

    @abstractmethod
    def to_persistence(self, entity: DomainEntity) -> PersistenceModel:
        """Convert domain entity to a new persistence model."""

    def to_domain_list(self, models: List[PersistenceModel]) -> List[DomainEntity]:
        """Convert list of persistence models to domain entities."""
        return [self.to_domain(model) for model in models]

    def to_persistence_list(
        self, entities: List[DomainEntity]
    ) -> List[PersistenceModel]:
        """Convert list of domain entities to persistence models."""
        return [self.to_persistence(entity) for entity in entities]


def to_timestamp(value: Optional[datetime]) -> Optional[Timestamp]:
    return Timestamp(value) if value is not None else None


def to_datetime(value: Optional[Timestamp]) -> Optional[datetime]:
    return value.value if value is not None else None
