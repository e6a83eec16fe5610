"""Content item mapper."""

from voicebatch.domain.entities.content_item import ContentItem, ItemStatus, PipelineStep
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.persistence.mappers.base import (
    Mapper,
    to_datetime,
    to_timestamp,
)
from voicebatch.infrastructure.persistence.models.content_item import ContentItemModel


class ContentItemMapper(Mapper[ContentItem, ContentItemModel]):
    """Maps between ContentItem and ContentItemModel."""

    def to_domain(self, model: ContentItemModel) -> ContentItem:
        return ContentItem(
            id=model.id,
            job_id=model.job_id,
            position=model.position,
            status=ItemStatus(model.status),
            current_step=PipelineStep(model.current_step),
            retry_count=model.retry_count,
            max_retries=model.max_retries,
            last_error=model.last_error,
            started_at=to_timestamp(model.started_at),
            completed_at=to_timestamp(model.completed_at),
            created_at=Timestamp(model.created_at),
            updated_at=Timestamp(model.updated_at),
        )

    def to_persistence(self, entity: ContentItem) -> ContentItemModel:
        model = ContentItemModel(id=entity.id, job_id=entity.job_id)
        self.update_model(model, entity)
        model.created_at = entity.created_at.value
        return model

    def update_model(self, model: ContentItemModel, entity: ContentItem) -> None:
        model.position = entity.position
        model.status = entity.status.value
        model.current_step = entity.current_step.value
        model.retry_count = entity.retry_count
        model.max_retries = entity.max_retries
        model.last_error = entity.last_error
        model.started_at = to_datetime(entity.started_at)
        model.completed_at = to_datetime(entity.completed_at)
        model.updated_at = entity.updated_at.value
