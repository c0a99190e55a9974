"""EventBus protocol and implementations.

The EventBus carries continuation events from the engine to handlers
(logging, metrics, test recorders) without the engine knowing about them.

- LocalEventBus: synchronous, in-process, handlers run in registration order
- NullEventBus: discards everything
"""

from collections.abc import Callable
from typing import Protocol

from job_continuation.events import Event, EventType

SyncHandler = Callable[[Event], None]


class EventBus(Protocol):
    """Protocol for event bus implementations."""

    def emit(self, event: Event) -> None:
        """Emit an event to all registered handlers."""
        ...

    def subscribe(
        self,
        handler: SyncHandler,
        event_types: list[EventType] | None = None,
    ) -> None:
        """Subscribe a handler to events."""
        ...

    def unsubscribe(self, handler: SyncHandler) -> None:
        """Unsubscribe a handler from events."""
        ...


class LocalEventBus:
    """Synchronous in-process event bus.

    Handlers are called synchronously in registration order, so an event
    is fully handled before the engine carries on.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[SyncHandler, list[EventType] | None]] = []

    def emit(self, event: Event) -> None:
        """Emit an event to all matching handlers."""
        for handler, event_types in self._handlers:
            if event_types is None or event.event_type in event_types:
                handler(event)

    def subscribe(
        self,
        handler: SyncHandler,
        event_types: list[EventType] | None = None,
    ) -> None:
        """Subscribe a handler to events."""
        self._handlers.append((handler, event_types))

    def unsubscribe(self, handler: SyncHandler) -> None:
        """Unsubscribe a handler from events."""
        self._handlers = [(h, et) for h, et in self._handlers if h != handler]

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()


class NullEventBus:
    """No-op event bus for when events are disabled."""

    def emit(self, event: Event) -> None:
        """Discard event."""
        pass

    def subscribe(
        self,
        handler: SyncHandler,
        event_types: list[EventType] | None = None,
    ) -> None:
        """No-op."""
        pass

    def unsubscribe(self, handler: SyncHandler) -> None:
        """No-op."""
        pass


__all__ = [
    "EventBus",
    "LocalEventBus",
    "NullEventBus",
    "SyncHandler",
]
