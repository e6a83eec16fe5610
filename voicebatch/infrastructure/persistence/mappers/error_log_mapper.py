"""Error log mapper."""

from voicebatch.domain.entities.error_log import ErrorLog, ErrorLogStatus
from voicebatch.domain.value_objects.timestamp import Timestamp
from voicebatch.infrastructure.persistence.mappers.base import (
    Mapper,
    to_datetime,
    to_timestamp,
)
from voicebatch.infrastructure.persistence.models.error_log import ErrorLogModel


class ErrorLogMapper(Mapper[ErrorLog, ErrorLogModel]):
    """Maps between ErrorLog and ErrorLogModel."""

    def to_domain(self, model: ErrorLogModel) -> ErrorLog:
        return ErrorLog(
            id=model.id,
            error_type=model.error_type,
            message=model.message,
            context=dict(model.context or {}),
            occurred_at=Timestamp(model.occurred_at),
            status=ErrorLogStatus(model.status),
            retry_count=model.retry_count,
            next_retry_at=to_timestamp(model.next_retry_at),
            resolved_at=to_timestamp(model.resolved_at),
            final_error=model.final_error,
            status_history=[ErrorLogStatus(s) for s in model.status_history or []],
            created_at=Timestamp(model.created_at),
            updated_at=Timestamp(model.updated_at),
        )

    def to_persistence(self, entity: ErrorLog) -> ErrorLogModel:
        model = ErrorLogModel(id=entity.id)
        self.update_model(model, entity)
        model.created_at = entity.created_at.value
        return model

    def update_model(self, model: ErrorLogModel, entity: ErrorLog) -> None:
        model.error_type = entity.error_type
        model.message = entity.message
        model.context = dict(entity.context)
        model.occurred_at = entity.occurred_at.value
        model.status = entity.status.value
        model.retry_count = entity.retry_count
        model.next_retry_at = to_datetime(entity.next_retry_at)
        model.resolved_at = to_datetime(entity.resolved_at)
        model.final_error = entity.final_error
        model.status_history = [s.value for s in entity.status_history]
        model.updated_at = entity.updated_at.value
