"""Pure domain services."""

from voicebatch.domain.services.retry_policy import (
    ErrorType,
    RETRYABLE_ERROR_TYPES,
    RetryPolicy,
)

__all__ = ["ErrorType", "RETRYABLE_ERROR_TYPES", "RetryPolicy"]
