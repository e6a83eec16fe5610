"""Application use cases."""

from voicebatch.application.use_cases.base import UseCase, UseCaseResult, ResultStatus
from voicebatch.application.use_cases.job_control import (
    CancelJobRequest,
    CancelJobResult,
    CancelJobUseCase,
    JobControlRequest,
    JobControlResult,
    PauseJobUseCase,
    ResumeJobUseCase,
    RetryFailedItemsRequest,
    RetryFailedItemsResult,
    RetryFailedItemsUseCase,
)

__all__ = [
    "UseCase",
    "UseCaseResult",
    "ResultStatus",
    "JobControlRequest",
    "JobControlResult",
    "CancelJobRequest",
    "CancelJobResult",
    "RetryFailedItemsRequest",
    "RetryFailedItemsResult",
    "PauseJobUseCase",
    "ResumeJobUseCase",
    "CancelJobUseCase",
    "RetryFailedItemsUseCase",
]
