"""Composition root for job runtime dependencies.

Binds the queue adapter and event bus used by jobs that do not set their
own. Tests swap in fresh instances and reset afterwards.

Usage:
    # Default usage
    adapter = Container.queue_adapter()

    # Testing
    Container.set_queue_adapter(InMemoryQueueAdapter())
    ...
    Container.reset()
"""

from job_continuation.adapters import InMemoryQueueAdapter, QueueAdapter
from job_continuation.bus import EventBus, LocalEventBus
from job_continuation.handlers import LogEventHandler


class Container:
    """Service container for job runtime dependencies.

    Provides lazy initialization of default implementations and
    allows overriding for testing purposes.
    """

    _queue_adapter: QueueAdapter | None = None
    _event_bus: EventBus | None = None

    @classmethod
    def queue_adapter(cls) -> QueueAdapter:
        """Get the queue adapter.

        Returns InMemoryQueueAdapter by default.
        """
        if cls._queue_adapter is None:
            cls._queue_adapter = InMemoryQueueAdapter()
        return cls._queue_adapter

    @classmethod
    def event_bus(cls) -> EventBus:
        """Get the event bus.

        Returns a LocalEventBus with a LogEventHandler subscribed by default.
        """
        if cls._event_bus is None:
            bus = LocalEventBus()
            bus.subscribe(LogEventHandler())
            cls._event_bus = bus
        return cls._event_bus

    @classmethod
    def set_queue_adapter(cls, adapter: QueueAdapter | None) -> None:
        """Override the queue adapter.

        Pass None to reset to default on next access.
        """
        cls._queue_adapter = adapter

    @classmethod
    def set_event_bus(cls, bus: EventBus | None) -> None:
        """Override the event bus.

        Pass None to reset to default on next access.
        """
        cls._event_bus = bus

    @classmethod
    def reset(cls) -> None:
        """Reset all overrides to defaults.

        Call this in test teardown to ensure clean state.
        """
        cls._queue_adapter = None
        cls._event_bus = None
