"""Logging and tracing setup."""

from voicebatch.infrastructure.observability.logging_setup import configure_logging
from voicebatch.infrastructure.observability.logfire_setup import configure_logfire
from voicebatch.infrastructure.observability.logfire_decorators import traced

__all__ = ["configure_logging", "configure_logfire", "traced"]
