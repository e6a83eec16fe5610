"""Job mapper for domain entity to persistence model conversion."""

from voicebatch.domain.entities.job import Job, JobStatus
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.persistence.mappers.base import (
    Mapper,
    to_datetime,
    to_timestamp,
)
from voicebatch.infrastructure.persistence.models.job import JobModel


class JobMapper(Mapper[Job, JobModel]):
    """Maps between the Job aggregate and JobModel."""

    def to_domain(self, model: JobModel) -> Job:
        return Job(
            id=model.id,
            name=model.name,
            status=JobStatus(model.status),
            total_items=model.total_items,
            completed_items=model.completed_items,
            failed_items=model.failed_items,
            started_at=to_timestamp(model.started_at),
            completed_at=to_timestamp(model.completed_at),
            voice_settings=model.voice_settings,
            prompt_settings=model.prompt_settings,
            created_at=Timestamp(model.created_at),
            updated_at=Timestamp(model.updated_at),
        )

    def to_persistence(self, entity: Job) -> JobModel:
        model = JobModel(id=entity.id)
        self.update_model(model, entity)
        model.created_at = entity.created_at.value
        return model

    def update_model(self, model: JobModel, entity: Job) -> None:
        """Copy mutable job state onto an existing row."""
        model.name = entity.name
        model.status = entity.status.value
        model.total_items = entity.total_items
        model.completed_items = entity.completed_items
        model.failed_items = entity.failed_items
        model.started_at = to_datetime(entity.started_at)
        model.completed_at = to_datetime(entity.completed_at)
        model.voice_settings = entity.voice_settings
        model.prompt_settings = entity.prompt_settings
        model.updated_at = entity.updated_at.value
