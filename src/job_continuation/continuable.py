"""Continuable jobs: split a job into resumable steps.

A ContinuableJob runs its ``perform`` inside the continuation lifecycle.
Each ``self.step(...)`` call is skipped if it completed in an earlier
attempt, resumed from its persisted cursor if it was interrupted, or run
fresh. When the worker is stopping, the job is interrupted at the next
checkpoint and re-enqueued to continue later.

Usage:
    class ImportJob(ContinuableJob, max_resumptions=10):
        def perform(self, batch_id: int) -> None:
            self.step("download", self.download)
            self.step("import_rows", self.import_rows, start=0)
            self.step("finalize", isolated=True)

        def download(self) -> None:
            ...

        @step_handler
        def import_rows(self, step: Step) -> None:
            for row in load_rows()[step.cursor:]:
                store(row)
                step.advance()

        @step_handler
        def finalize(self) -> None:
            ...
"""

import inspect
from collections.abc import Callable
from typing import Any, ClassVar, NoReturn, TypeVar

from job_continuation.config import ContinuationConfig, get_settings
from job_continuation.continuation import (
    Continuation,
    StepCallable,
    build_continuation,
    check_step_name,
)
from job_continuation.events import EventType
from job_continuation.exceptions import (
    CheckpointError,
    ContinuationError,
    Interrupt,
    ResumeLimitError,
)
from job_continuation.job import Job
from job_continuation.serialization import serialize_value

F = TypeVar("F", bound=Callable[..., Any])

_CONFIG_KEYS = ("max_resumptions", "resume_options", "resume_errors_after_advancing")


def _accepts_step(func: Callable[..., Any], label: str, *, unbound: bool = False) -> bool:
    """Check a step handler signature and report whether it takes the Step.

    Handlers take 0 or 1 positional parameters and no keyword-only
    parameters.

    Raises:
        TypeError: If the signature does not fit
    """
    try:
        parameters = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        return True
    if unbound and parameters:
        parameters = parameters[1:]

    positional = [
        p
        for p in parameters
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    required = [p for p in positional if p.default is inspect.Parameter.empty]
    if len(required) > 1:
        raise TypeError(f"{label} must accept 0 or 1 arguments")
    if any(p.kind is inspect.Parameter.KEYWORD_ONLY for p in parameters):
        raise TypeError(f"{label} must not accept keyword arguments")
    return bool(positional) or any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in parameters)


def step_handler(func: F) -> F:
    """Register a job method as a step handler.

    The signature is checked when the class body is executed, so a
    malformed handler fails before any job of the type runs.
    """
    func.__step_handler__ = _accepts_step(  # type: ignore[attr-defined]
        func, f"Step method '{func.__name__}'", unbound=True
    )
    return func


class ContinuableJob(Job):
    """Job whose ``perform`` is split into resumable steps.

    Configuration is given as class keywords and inherited by subclasses:

        class SyncJob(ContinuableJob, max_resumptions=5, resume_options={"wait": 30}):
            ...

    Each job type's config is built when its class is defined, from the
    current settings plus the class keywords of the type and its parents.

    Attributes:
        continuation_config: Immutable continuation policy for this job type
        step_handlers: Registered step methods, name -> whether it takes the Step
        resumptions: Number of times this job has been resumed
        continuation: Step progress for the current attempt
    """

    continuation_config: ClassVar[ContinuationConfig] = get_settings().to_config()
    step_handlers: ClassVar[dict[str, bool]] = {}
    _config_overrides: ClassVar[dict[str, Any]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        overrides = {key: kwargs.pop(key) for key in _CONFIG_KEYS if key in kwargs}
        super().__init_subclass__(**kwargs)
        cls._config_overrides = {**cls._config_overrides, **overrides}
        cls.continuation_config = get_settings().to_config().with_overrides(
            **cls._config_overrides
        )

        handlers = dict(cls.step_handlers)
        for name, member in vars(cls).items():
            accepts_step = getattr(member, "__step_handler__", None)
            if accepts_step is not None:
                handlers[name] = accepts_step
        cls.step_handlers = handlers

    def __init__(self, *arguments: Any) -> None:
        super().__init__(*arguments)
        self.resumptions = 0
        self.continuation: Continuation = build_continuation(self, {})

    def step(
        self,
        name: str,
        handler: Callable[..., Any] | None = None,
        *,
        start: Any = None,
        isolated: bool = False,
    ) -> None:
        """Run a named step unless it already completed.

        Args:
            name: Step name, unique within the job
            handler: Callable taking the Step (or nothing); defaults to the
                job method called ``name``
            start: Initial cursor
            isolated: Always start this step at the beginning of a fresh
                attempt

        Raises:
            TypeError: If the handler signature does not fit
            InvalidStepError: If the step breaks the replay rules
        """
        step_callable = self._step_callable(name, handler)
        if self.continuation.advanced:
            self.checkpoint()
        self.continuation.step(name, step_callable, start=start, isolated=isolated)

    def checkpoint(self) -> None:
        """Interrupt the job if the worker is stopping.

        Raises:
            CheckpointError: If the host does not allow a checkpoint now
            Interrupt: If the worker is stopping
        """
        reason = self.checkpoint_blocked_reason()
        if reason is not None:
            raise CheckpointError(f"Cannot checkpoint job: {reason}")
        if self._adapter().stopping():
            self.interrupt("stopping")

    def checkpoint_blocked_reason(self) -> str | None:
        """Why a checkpoint is not allowed right now, or None.

        Override to forbid checkpoints e.g. while a transaction is open.
        """
        return None

    def interrupt(self, reason: str) -> NoReturn:
        """Stop this attempt; progress is saved and the job resumed later."""
        description = self.continuation.description
        self.instrument(EventType.INTERRUPT, description=description, reason=reason)
        raise Interrupt(f"Interrupted {description} ({reason})", reason=reason)

    def resume_job(self, exception: BaseException) -> None:
        """Re-enqueue the job to continue from its saved progress.

        Raises:
            ResumeLimitError: If the job was resumed ``max_resumptions`` times
        """
        self.record_exception_execution(exception)

        config = type(self).continuation_config
        if config.max_resumptions is None or self.resumptions < config.max_resumptions:
            self.retry_job(**config.resume_options.as_retry_kwargs())
        else:
            raise ResumeLimitError(config.max_resumptions) from exception

    def serialize(self) -> dict[str, Any]:
        data = super().serialize()
        data["continuation"] = _serialize_continuation(self.continuation)
        data["resumptions"] = self.resumptions
        return data

    def deserialize(self, job_data: dict[str, Any]) -> None:
        super().deserialize(job_data)
        self.continuation = build_continuation(self, job_data.get("continuation") or {})
        self.resumptions = job_data.get("resumptions", 0)

    def _perform(self) -> Any:
        return self._continue(super()._perform)

    def _continue(self, perform: Callable[[], Any]) -> Any:
        if self.continuation.started:
            self.resumptions += 1
            self.instrument(
                EventType.RESUME,
                description=self.continuation.description,
                resumptions=self.resumptions,
            )

        try:
            return perform()
        except Interrupt as e:
            self.resume_job(e)
        except ContinuationError:
            raise
        except Exception as e:
            config = type(self).continuation_config
            if config.resume_errors_after_advancing and self.continuation.advanced:
                self.resume_job(e)
            else:
                raise
        return None

    def _step_callable(self, name: str, handler: Callable[..., Any] | None) -> StepCallable:
        if handler is None:
            check_step_name(name)
            handler = getattr(self, name)
            accepts_step = type(self).step_handlers.get(name)
            if accepts_step is None:
                accepts_step = _accepts_step(handler, f"Step method '{name}'")
        else:
            accepts_step = _accepts_step(handler, f"Step '{name}' handler")

        if accepts_step:
            return handler
        return lambda _step: handler()


def _serialize_continuation(continuation: Continuation) -> dict[str, Any]:
    return serialize_value(continuation.to_dict())  # type: ignore[no-any-return]


__all__ = ["ContinuableJob", "step_handler"]
