"""Application services coordinating the domain with queues and the event bus."""

from voicebatch.application.services.job_locks import KeyedLock
from voicebatch.application.services.job_orchestrator import JobOrchestrator, JobStatusView
from voicebatch.application.services.error_recovery_service import (
    ErrorRecoveryService,
    ErrorStats,
)

__all__ = [
    "KeyedLock",
    "JobOrchestrator",
    "JobStatusView",
    "ErrorRecoveryService",
    "ErrorStats",
]
