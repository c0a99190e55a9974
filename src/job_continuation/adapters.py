"""Queue adapter protocol and in-memory implementation.

A queue adapter is the boundary to the host's broker. The continuation
engine needs exactly two things from it: a place to put serialized jobs,
and a way to ask whether the worker is shutting down.
"""

import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class QueueAdapter(Protocol):
    """Protocol for queue backends.

    Implementations wrap a real broker (Redis, SQS, a database table, ...).
    """

    def enqueue(self, job_data: dict[str, Any], scheduled_at: datetime | None = None) -> None:
        """Store serialized job data for a future execution."""
        ...

    def stopping(self) -> bool:
        """True while the worker is draining for shutdown."""
        ...


class InMemoryQueueAdapter:
    """Queue adapter that keeps jobs in a list.

    Jobs pass through a JSON round trip on enqueue, so only what was
    serialized survives, exactly as with a real broker. Jobs are performed
    explicitly with ``perform_enqueued_jobs``.

    Usage:
        adapter = InMemoryQueueAdapter()
        Container.set_queue_adapter(adapter)

        ImportJob.perform_later()
        adapter.perform_enqueued_jobs()
    """

    def __init__(self, stopping: Callable[[], bool] | None = None) -> None:
        self.enqueued_jobs: list[dict[str, Any]] = []
        self.performed_jobs: list[dict[str, Any]] = []
        self._stopping = stopping

    def enqueue(self, job_data: dict[str, Any], scheduled_at: datetime | None = None) -> None:
        """Record a copy of the job data as the broker would persist it."""
        stored = json.loads(json.dumps(job_data))
        stored["scheduled_at"] = scheduled_at.isoformat() if scheduled_at else None
        self.enqueued_jobs.append(stored)

    def stopping(self) -> bool:
        """Evaluate the stopping predicate, if one is installed."""
        if self._stopping is None:
            return False
        return bool(self._stopping())

    @contextmanager
    def stopping_when(self, predicate: Callable[[], bool]) -> Iterator["InMemoryQueueAdapter"]:
        """Temporarily report ``stopping()`` as ``predicate()``.

        The predicate may also raise, simulating a failure at a checkpoint.
        """
        previous = self._stopping
        self._stopping = predicate
        try:
            yield self
        finally:
            self._stopping = previous

    def enqueued_for(self, job_class: type | str) -> list[dict[str, Any]]:
        """Enqueued job data for one job class."""
        name = job_class if isinstance(job_class, str) else _job_class_name(job_class)
        return [job for job in self.enqueued_jobs if job["job_class"] == name]

    def perform_enqueued_jobs(self, only: type | None = None) -> int:
        """Perform the jobs enqueued so far.

        Jobs enqueued while performing (e.g. resumptions) stay enqueued for
        the next call. If a job raises, the jobs after it are put back at
        the front of the queue and the exception propagates.

        Args:
            only: Perform only jobs of this class; others stay enqueued

        Returns:
            Number of jobs performed
        """
        from job_continuation.job import Job

        if only is None:
            pending, self.enqueued_jobs = self.enqueued_jobs, []
        else:
            name = _job_class_name(only)
            pending = [job for job in self.enqueued_jobs if job["job_class"] == name]
            self.enqueued_jobs = [job for job in self.enqueued_jobs if job["job_class"] != name]

        for index, job_data in enumerate(pending):
            logger.debug("Performing %s (Job ID: %s)", job_data["job_class"], job_data["job_id"])
            self.performed_jobs.append(job_data)
            try:
                Job.execute(job_data)
            except BaseException:
                remaining = pending[index + 1 :]
                if remaining:
                    logger.debug("Requeueing %d job(s) after a failed job", len(remaining))
                self.enqueued_jobs[:0] = remaining
                raise
        return len(pending)

    def clear(self) -> None:
        """Drop all recorded jobs."""
        self.enqueued_jobs.clear()
        self.performed_jobs.clear()


def _job_class_name(job_class: type) -> str:
    return f"{job_class.__module__}.{job_class.__qualname__}"


# Verify protocol compliance at import time
assert isinstance(InMemoryQueueAdapter(), QueueAdapter)
