"""Continuation state machine.

One Continuation exists per job execution attempt. It remembers which steps
completed in this or earlier attempts, which step (if any) was left
mid-progress, and decides for every ``step()`` call whether to skip it, run
it, or interrupt the attempt before it starts.

Replay rules:
- A step name may appear only once per attempt
- Steps may not be nested
- On resumption, steps must be encountered in the order recorded by the
  previous attempts, ending with the step that was in progress
"""

import time
from collections.abc import Callable, Mapping
from typing import Any, NoReturn, Protocol

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from job_continuation.events import EventType
from job_continuation.exceptions import Interrupt, InvalidStepError
from job_continuation.step import Step

StepCallable = Callable[[Step], Any]


class ContinuationHost(Protocol):
    """What the continuation needs from the job that owns it."""

    def checkpoint(self) -> None:
        """Interrupt the attempt if the job should stop now."""
        ...

    def interrupt(self, reason: str) -> NoReturn:
        """Stop the attempt by raising Interrupt."""
        ...

    def instrument(self, event_type: EventType, **payload: Any) -> None:
        """Publish a continuation event."""
        ...


class ContinuationState(BaseModel):
    """Persisted continuation progress."""

    completed: list[str] = []
    current: tuple[str, Any] | None = None

    @field_validator("completed")
    @classmethod
    def _no_duplicates(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        for name in value:
            if name in seen:
                raise ValueError(f"step '{name}' is completed more than once")
            seen.add(name)
        return value

    @model_validator(mode="after")
    def _current_not_completed(self) -> "ContinuationState":
        if self.current is not None and self.current[0] in self.completed:
            raise ValueError(f"step '{self.current[0]}' is both completed and in progress")
        return self


def check_step_name(name: Any) -> None:
    """Raise InvalidStepError unless ``name`` is a usable step name."""
    if not isinstance(name, str):
        raise InvalidStepError(f"Step '{name}' must be a str, found '{type(name).__name__}'")


class Continuation:
    """Step progress for one execution attempt of a job."""

    def __init__(self, job: ContinuationHost, state: ContinuationState) -> None:
        self.job = job
        self.completed: list[str] = list(state.completed)
        self.current: Step | None = None
        if state.current is not None:
            name, cursor = state.current
            self.current = self._new_step(name, cursor, resumed=True)
        self.encountered: list[str] = []
        self._advanced = False
        self._running_step = False
        self._isolating = False

    def step(
        self,
        name: str,
        handler: StepCallable,
        *,
        start: Any = None,
        isolated: bool = False,
    ) -> None:
        """Skip, run or interrupt before the step called ``name``.

        Args:
            name: Step name
            handler: Called with the Step when the step runs
            start: Initial cursor for a step that has not started yet
            isolated: Run this step only as the first thing in an attempt

        Raises:
            InvalidStepError: If the step breaks the replay rules
            Interrupt: If the attempt must stop before or during the step
        """
        self._validate_step(name)
        self.encountered.append(name)

        if name in self.completed:
            self._skip_step(name)
        else:
            self._run_step(name, handler, start=start, isolated=isolated)

    def to_dict(self) -> dict[str, Any]:
        """Persisted form, without ``current`` when no step is in progress."""
        data: dict[str, Any] = {"completed": list(self.completed)}
        if self.current is not None:
            data["current"] = self.current.to_list()
        return data

    @property
    def description(self) -> str:
        if self.current is not None:
            return self.current.description
        if self.completed:
            return f"after '{self.completed[-1]}'"
        return "not started"

    @property
    def started(self) -> bool:
        return bool(self.completed) or self.current is not None

    @property
    def advanced(self) -> bool:
        """True once a step completed or moved its cursor in this attempt."""
        return self._advanced

    def _validate_step(self, name: str) -> None:
        check_step_name(name)
        if name in self.encountered:
            raise InvalidStepError(f"Step '{name}' has already been encountered")
        if self._running_step and self.current is not None:
            raise InvalidStepError(
                f"Step '{name}' is nested inside step '{self.current.name}'"
            )
        if self.current is not None and self.current.name != name and name not in self.completed:
            raise InvalidStepError(
                f"Step '{name}' found, expected to resume from '{self.current.name}'"
            )

        position = len(self.encountered)
        if position < len(self.completed) and self.completed[position] != name:
            raise InvalidStepError(
                f"Step '{name}' found, expected to see '{self.completed[position]}'"
            )

    def _skip_step(self, name: str) -> None:
        self.job.instrument(EventType.STEP_SKIPPED, step_name=name)

    def _run_step(self, name: str, handler: StepCallable, *, start: Any, isolated: bool) -> None:
        self._isolating = self._isolating or isolated

        if self._isolating and self._advanced:
            self.job.interrupt("isolating")
        else:
            self._run_step_inline(name, handler, start=start)

    def _run_step_inline(self, name: str, handler: StepCallable, *, start: Any) -> None:
        self._running_step = True
        try:
            if self.current is None:
                self.current = self._new_step(name, start, resumed=False)
            step = self.current
            self._instrumenting_step(step, handler)

            step.mark_completed()
            self.completed.append(step.name)
            self.current = None
            self._advanced = True
        finally:
            self._running_step = False
            if self.current is not None and self.current.advanced:
                self._advanced = True

    def _instrumenting_step(self, step: Step, handler: StepCallable) -> None:
        self.job.instrument(
            EventType.STEP_STARTED,
            step_name=step.name,
            cursor=step.cursor,
            resumed=step.resumed,
        )
        started = time.monotonic()
        interrupted = False
        error: str | None = None
        try:
            handler(step)
        except Interrupt:
            interrupted = True
            raise
        except Exception as e:
            error = str(e) or type(e).__name__
            raise
        finally:
            self.job.instrument(
                EventType.STEP,
                step_name=step.name,
                cursor=step.cursor,
                interrupted=interrupted,
                error=error,
                duration_seconds=time.monotonic() - started,
            )

    def _new_step(self, name: str, cursor: Any, *, resumed: bool) -> Step:
        return Step(name, cursor, resumed=resumed, checkpoint=self.job.checkpoint)


def build_continuation(
    job: ContinuationHost, state: Mapping[str, Any] | ContinuationState | None = None
) -> Continuation:
    """Reconstruct a job's continuation from its persisted progress.

    Args:
        job: The job that owns the continuation
        state: Persisted ``{"completed": [...], "current": [name, cursor]}``
            mapping, or None/empty for a job that has not started

    Raises:
        InvalidStepError: If the persisted progress is malformed
    """
    if isinstance(state, ContinuationState):
        return Continuation(job, state)
    try:
        parsed = ContinuationState.model_validate(dict(state or {}))
    except ValidationError as e:
        raise InvalidStepError(f"Invalid continuation state: {e}") from e
    return Continuation(job, parsed)


__all__ = [
    "Continuation",
    "ContinuationHost",
    "ContinuationState",
    "StepCallable",
    "build_continuation",
    "check_step_name",
]
