"""In-process event bus.

Handlers run sequentially on the caller's event loop: first those
subscribed to the event's type, in subscription order, then the
catch-all handlers. A failing handler is logged and skipped.
"""

import inspect
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from voicebatch.domain.events import DomainEvent, EventType
from voicebatch.domain.protocols.event_bus import EventHandler, Unsubscribe


logger = structlog.get_logger(__name__)

# A registration is keyed by a fresh object so the same handler can be
# subscribed twice and removed once.
_Registration = Tuple[object, EventHandler]


class InMemoryEventBus:
    """Event bus that dispatches within the current process."""

    def __init__(self) -> None:
        self._handlers: Dict[EventType, List[_Registration]] = defaultdict(list)
        self._all_handlers: List[_Registration] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> Unsubscribe:
        event_type = EventType(event_type)
        registration = (object(), handler)
        self._handlers[event_type].append(registration)
        logger.debug(
            "Handler subscribed",
            event_type=event_type.value,
            handler=_handler_name(handler),
        )

        def unsubscribe() -> None:
            self._remove(self._handlers[event_type], registration)

        return unsubscribe

    def subscribe_all(self, handler: EventHandler) -> Unsubscribe:
        registration = (object(), handler)
        self._all_handlers.append(registration)

        def unsubscribe() -> None:
            self._remove(self._all_handlers, registration)

        return unsubscribe

    async def publish(self, event: DomainEvent) -> None:
        event_type = event.event_type
        # Snapshot so handlers may (un)subscribe while we deliver
        registrations = list(self._handlers.get(event_type, ())) + list(
            self._all_handlers
        )

        logger.debug(
            "Publishing event",
            event_type=event_type.value,
            event_id=event.event_id,
            handler_count=len(registrations),
        )

        for _, handler in registrations:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    "Event handler failed",
                    event_type=event_type.value,
                    event_id=event.event_id,
                    handler=_handler_name(handler),
                    exc_info=True,
                )

    async def publish_many(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)

    def subscription_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return sum(len(regs) for regs in self._handlers.values()) + len(
                self._all_handlers
            )
        return len(self._handlers.get(EventType(event_type), ()))

    def clear(self) -> None:
        self._handlers.clear()
        self._all_handlers.clear()

    @staticmethod
    def _remove(registrations: List[_Registration], registration: _Registration) -> None:
        for index, (token, _) in enumerate(registrations):
            if token is registration[0]:
                del registrations[index]
                return


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
