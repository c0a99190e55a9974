"""Minimal host job runtime.

Job provides what the continuation engine expects from its host framework:
- identity and persisted state (job_id, arguments, executions)
- serialize / deserialize to a JSON-compatible dict
- enqueue / retry_job through a QueueAdapter
- instrument: publish events on the EventBus
- the "current job" for the running context

It has no retry/discard policy of its own: exceptions raised by
``perform`` propagate to whoever called ``perform_now``.

Usage:
    class GreetJob(Job):
        def perform(self, name: str) -> None:
            print(f"Hello, {name}!")

    GreetJob.perform_later("world")
"""

import logging
from abc import ABC, abstractmethod
from contextvars import ContextVar
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, TypeVar
from uuid import uuid4

from job_continuation.adapters import QueueAdapter
from job_continuation.bus import EventBus
from job_continuation.container import Container
from job_continuation.events import EVENT_MODELS, EventType
from job_continuation.exceptions import UnknownJobClassError
from job_continuation.serialization import (
    deserialize_time,
    serialize_arguments,
    serialize_time,
)

logger = logging.getLogger(__name__)

JobT = TypeVar("JobT", bound="Job")

_current_job: ContextVar["Job | None"] = ContextVar("current_job", default=None)


def get_current_job() -> "Job | None":
    """Get the job being performed in the current context."""
    return _current_job.get()


class Job(ABC):
    """Base class for background jobs.

    Subclass and implement ``perform``. Job classes register themselves by
    dotted name so serialized job data can be turned back into instances.

    Attributes:
        queue_name: Default queue for this job type
        priority: Default priority for this job type
        queue_adapter: Adapter override; None uses the Container default
    """

    queue_name: ClassVar[str] = "default"
    priority: ClassVar[int | None] = None
    queue_adapter: ClassVar[QueueAdapter | None] = None

    _registry: ClassVar[dict[str, type["Job"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        Job._registry[cls.job_class_name()] = cls

    def __init__(self, *arguments: Any) -> None:
        self.arguments: list[Any] = list(arguments)
        self.job_id = str(uuid4())
        self.queue_name = type(self).queue_name
        self.priority = type(self).priority
        self.executions = 0
        self.exception_executions: dict[str, int] = {}
        self.enqueued_at: datetime | None = None
        self.scheduled_at: datetime | None = None

    @abstractmethod
    def perform(self, *arguments: Any) -> Any:
        """Do the job's work."""
        ...

    @classmethod
    def job_class_name(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def lookup(cls, job_class: str) -> type["Job"]:
        """Find a registered job class by dotted name."""
        try:
            return cls._registry[job_class]
        except KeyError:
            raise UnknownJobClassError(job_class) from None

    @classmethod
    def perform_later(cls: type[JobT], *arguments: Any, **options: Any) -> JobT:
        """Build a job and enqueue it."""
        job = cls(*arguments)
        job.enqueue(**options)
        return job

    @classmethod
    def execute(cls, job_data: dict[str, Any]) -> Any:
        """Rebuild a job from serialized data and perform it."""
        job = cls.lookup(job_data["job_class"])()
        job.deserialize(job_data)
        return job.perform_now()

    def perform_now(self) -> Any:
        """Perform the job in the current process."""
        self.executions += 1
        token = _current_job.set(self)
        try:
            return self._perform()
        finally:
            _current_job.reset(token)

    def _perform(self) -> Any:
        return self.perform(*self.arguments)

    def enqueue(
        self,
        wait: timedelta | float | None = None,
        queue: str | None = None,
        priority: int | None = None,
    ) -> "Job":
        """Hand the job's serialized state to the queue adapter.

        Args:
            wait: Delay before the job becomes due (timedelta or seconds)
            queue: Queue override
            priority: Priority override
        """
        if queue is not None:
            self.queue_name = queue
        if priority is not None:
            self.priority = priority
        now = datetime.now(timezone.utc)
        if wait is not None:
            if not isinstance(wait, timedelta):
                wait = timedelta(seconds=wait)
            self.scheduled_at = now + wait
        else:
            self.scheduled_at = None
        self.enqueued_at = now

        self._adapter().enqueue(self.serialize(), self.scheduled_at)
        logger.debug(
            "Enqueued %s (Job ID: %s) to %s", self.job_class_name(), self.job_id, self.queue_name
        )
        return self

    def retry_job(
        self,
        wait: timedelta | float | None = None,
        queue: str | None = None,
        priority: int | None = None,
    ) -> "Job":
        """Schedule a new execution of this job with its current state."""
        return self.enqueue(wait=wait, queue=queue, priority=priority)

    def record_exception_execution(self, exception: BaseException) -> int:
        """Count an execution that ended with ``exception``.

        Returns:
            Number of executions that ended with this exception type
        """
        key = type(exception).__name__
        self.exception_executions[key] = self.exception_executions.get(key, 0) + 1
        return self.exception_executions[key]

    def instrument(self, event_type: EventType, **payload: Any) -> None:
        """Build an event for this job and emit it on the event bus."""
        model = EVENT_MODELS[event_type]
        event = model(job_class=self.job_class_name(), job_id=self.job_id, **payload)
        self._event_bus().emit(event)  # type: ignore[arg-type]

    def serialize(self) -> dict[str, Any]:
        """Persisted job data (JSON-compatible)."""
        return {
            "job_class": self.job_class_name(),
            "job_id": self.job_id,
            "queue_name": self.queue_name,
            "priority": self.priority,
            "arguments": serialize_arguments(self.arguments),
            "executions": self.executions,
            "exception_executions": dict(self.exception_executions),
            "enqueued_at": serialize_time(self.enqueued_at),
            "scheduled_at": serialize_time(self.scheduled_at),
        }

    def deserialize(self, job_data: dict[str, Any]) -> None:
        """Restore persisted job data onto this instance."""
        self.job_id = job_data["job_id"]
        self.queue_name = job_data.get("queue_name", self.queue_name)
        self.priority = job_data.get("priority")
        self.arguments = list(job_data.get("arguments", []))
        self.executions = job_data.get("executions", 0)
        self.exception_executions = dict(job_data.get("exception_executions") or {})
        self.enqueued_at = deserialize_time(job_data.get("enqueued_at"))
        self.scheduled_at = deserialize_time(job_data.get("scheduled_at"))

    def _adapter(self) -> QueueAdapter:
        return type(self).queue_adapter or Container.queue_adapter()

    def _event_bus(self) -> EventBus:
        return Container.event_bus()

    def __repr__(self) -> str:
        return f"{self.job_class_name()}(job_id={self.job_id!r})"


__all__ = ["Job", "get_current_job"]
