"""Domain protocol for event distribution.

The orchestrator and the recovery service react to each other through
this interface only; the in-process implementation lives in
``voicebatch.infrastructure.events``.
"""

from typing import Awaitable, Callable, Iterable, Optional, Protocol, Union

from voicebatch.domain.events import DomainEvent, EventType


EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


class EventBus(Protocol):
    """Publish/subscribe channel for domain events."""

    def subscribe(self, event_type: EventType, handler: EventHandler) -> Unsubscribe:
        """Register a handler for one event type.

        Args:
            event_type: Event kind to listen for
            handler: Sync or async callable receiving the event

        Returns:
            Callable that removes exactly this registration
        """
        ...

    def subscribe_all(self, handler: EventHandler) -> Unsubscribe:
        """Register a handler invoked for every event."""
        ...

    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to its handlers, then to the catch-all handlers.

        Handler failures are logged and never reach the publisher.
        """
        ...

    async def publish_many(self, events: Iterable[DomainEvent]) -> None:
        """Publish events one after another, in order."""
        ...

    def subscription_count(self, event_type: Optional[EventType] = None) -> int:
        """Number of handlers for ``event_type``, or all handlers when omitted."""
        ...

    def clear(self) -> None:
        """Drop every subscription."""
        ...
