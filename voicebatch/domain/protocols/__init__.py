"""Ports the application layer depends on."""

from voicebatch.domain.protocols.event_bus import EventBus, EventHandler, Unsubscribe
from voicebatch.domain.protocols.queue import (
    DEFAULT_MAX_ATTEMPTS,
    Queue,
    QueueJob,
    QueueManager,
)

__all__ = [
    "EventBus",
    "EventHandler",
    "Unsubscribe",
    "DEFAULT_MAX_ATTEMPTS",
    "Queue",
    "QueueJob",
    "QueueManager",
]
