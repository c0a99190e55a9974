"""Test helpers for continuable jobs.

Simulate a worker shutdown at a precise point of a job's progress:

    with interrupt_job_during_step(ImportJob, "import_rows", cursor=3):
        adapter.perform_enqueued_jobs()   # stops once the cursor reaches 3

    with interrupt_job_after_step(ImportJob, "download"):
        adapter.perform_enqueued_jobs()   # stops right after "download"
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from job_continuation.adapters import InMemoryQueueAdapter
from job_continuation.container import Container
from job_continuation.continuable import ContinuableJob
from job_continuation.job import get_current_job
from job_continuation.serialization import serialize_value


def _in_memory_adapter(adapter: InMemoryQueueAdapter | None) -> InMemoryQueueAdapter:
    adapter = adapter or Container.queue_adapter()  # type: ignore[assignment]
    if not isinstance(adapter, InMemoryQueueAdapter):
        raise TypeError(
            f"Interrupting jobs requires an InMemoryQueueAdapter, found '{type(adapter).__name__}'"
        )
    return adapter


def _continuation_for(job_class: type[ContinuableJob]) -> dict[str, Any] | None:
    job = get_current_job()
    if isinstance(job, job_class):
        return serialize_value(job.continuation.to_dict())  # type: ignore[no-any-return]
    return None


def during_step(job_class: type[ContinuableJob], step: str, cursor: Any = None) -> bool:
    """True while a job of ``job_class`` is inside ``step`` at ``cursor``."""
    state = _continuation_for(job_class)
    if state is None:
        return False
    return state.get("current") == [step, serialize_value(cursor)]


def after_step(job_class: type[ContinuableJob], step: str) -> bool:
    """True when ``step`` is the last completed step and nothing is running."""
    state = _continuation_for(job_class)
    if state is None:
        return False
    completed = state["completed"]
    return bool(completed) and completed[-1] == step and "current" not in state


@contextmanager
def interrupt_job_during_step(
    job_class: type[ContinuableJob],
    step: str,
    cursor: Any = None,
    *,
    adapter: InMemoryQueueAdapter | None = None,
) -> Iterator[None]:
    """Report the worker as stopping while the job is at ``step``/``cursor``."""
    with _in_memory_adapter(adapter).stopping_when(lambda: during_step(job_class, step, cursor)):
        yield


@contextmanager
def interrupt_job_after_step(
    job_class: type[ContinuableJob],
    step: str,
    *,
    adapter: InMemoryQueueAdapter | None = None,
) -> Iterator[None]:
    """Report the worker as stopping once ``step`` has completed."""
    with _in_memory_adapter(adapter).stopping_when(lambda: after_step(job_class, step)):
        yield


__all__ = [
    "during_step",
    "after_step",
    "interrupt_job_during_step",
    "interrupt_job_after_step",
]
