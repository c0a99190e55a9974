"""Continuation exception hierarchy.

Two unrelated roots:
- Interrupt: control-flow signal meaning "stop here, resume later"
- ContinuationError: fatal errors that are never resumed

Interrupt derives from BaseException so that ordinary ``except Exception``
clauses inside step handlers do not absorb it.

Usage:
    from job_continuation.exceptions import ContinuationError, Interrupt

    try:
        job.perform_now()
    except ContinuationError as e:
        print(f"Continuation failed: {e.message}")
"""


class Interrupt(BaseException):
    """Raised to stop the current attempt at a checkpoint.

    Always handled by the job's continuation wrapper, which persists progress
    and re-enqueues the job.
    """

    def __init__(self, message: str, reason: str | None = None) -> None:
        self.message = message
        self.reason = reason
        super().__init__(message)


class ContinuationError(Exception):
    """Base exception for all continuation errors.

    Continuation errors are never treated as resumable.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidStepError(ContinuationError):
    """Step name is invalid or does not match the recorded step order."""

    pass


class CheckpointError(ContinuationError):
    """A checkpoint was attempted where the host does not allow one.

    For example while a database transaction is open.
    """

    pass


class UnadvanceableCursorError(ContinuationError):
    """The step cursor has no successor, so ``advance()`` needs ``from_``."""

    def __init__(self, cursor_class: str) -> None:
        self.cursor_class = cursor_class
        super().__init__(f"Cursor class '{cursor_class}' does not define a successor")


class ResumeLimitError(ContinuationError):
    """The job was resumed its maximum number of times."""

    def __init__(self, max_resumptions: int) -> None:
        self.max_resumptions = max_resumptions
        super().__init__(f"Job was resumed a maximum of {max_resumptions} times")


class UnknownJobClassError(ContinuationError):
    """Serialized job data names a job class that is not registered."""

    def __init__(self, job_class: str) -> None:
        self.job_class = job_class
        super().__init__(f"Unknown job class: {job_class}")


__all__ = [
    "Interrupt",
    "ContinuationError",
    "InvalidStepError",
    "CheckpointError",
    "UnadvanceableCursorError",
    "ResumeLimitError",
    "UnknownJobClassError",
]
