"""Retry classification and backoff policy for logged errors."""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


class ErrorType(str, Enum):
    """Error tags the pipeline reports."""

    NETWORK_ERROR = "network_error"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TRANSIENT_ERROR = "transient_error"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN = "unknown"


RETRYABLE_ERROR_TYPES = frozenset(
    {
        ErrorType.NETWORK_ERROR.value,
        ErrorType.RATE_LIMIT.value,
        ErrorType.TIMEOUT.value,
        ErrorType.SERVICE_UNAVAILABLE.value,
        ErrorType.TRANSIENT_ERROR.value,
    }
)


@dataclass
class RetryPolicy:
    """Exponential backoff with proportional jitter.

    ``delay = base + base * jitter_ratio * random()`` where
    ``base = min(base_delay_ms * 2 ** retry_count, max_delay_ms)``.
    """

    base_delay_ms: float = 1000.0
    max_delay_ms: float = 300_000.0
    jitter_ratio: float = 0.2
    random_source: Callable[[], float] = field(default=random.random, repr=False)

    @staticmethod
    def is_retryable(error_type: str) -> bool:
        """Case-insensitive membership in the retryable tag set."""
        return error_type.strip().lower() in RETRYABLE_ERROR_TYPES

    def calculate_base_delay(self, retry_count: int) -> float:
        return min(self.base_delay_ms * (2 ** retry_count), self.max_delay_ms)

    def calculate_retry_delay(self, retry_count: int) -> float:
        """Delay in milliseconds before retry number ``retry_count + 1``."""
        base = self.calculate_base_delay(retry_count)
        return base + base * self.jitter_ratio * self.random_source()
