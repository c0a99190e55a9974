"""Job output loggers.

Continuation log lines are written through a JobLogger: a Rich console in
workers, a list in tests. A logger can be installed for one job class so a
noisy job type can be silenced or captured separately:

    set_logger(NullLogger(), job_class=ImportJob)
    set_logger(ListLogger())          # everything else
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class JobLogger(Protocol):
    """Protocol for job logging output."""

    def print(self, message: str) -> None:
        """Print a message to the output.

        Args:
            message: Message to print (may contain Rich markup)
        """
        ...


class RichConsoleLogger:
    """Default logger implementation using Rich console.

    Args:
        stderr: Write to stderr instead of stdout, as worker processes
            usually reserve stdout for job output
    """

    def __init__(self, stderr: bool = False) -> None:
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)

    def print(self, message: str) -> None:
        self._console.print(message)


class NullLogger:
    """Silent logger."""

    def print(self, message: str) -> None:
        pass


class ListLogger:
    """Logger that captures messages to a list for testing."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def print(self, message: str) -> None:
        self.messages.append(message)

    @property
    def text(self) -> str:
        """All captured messages joined by newlines."""
        return "\n".join(self.messages)


_default_logger: JobLogger | None = None
_job_loggers: dict[str, JobLogger] = {}


def _job_class_key(job_class: type | str) -> str:
    if isinstance(job_class, str):
        return job_class
    return f"{job_class.__module__}.{job_class.__qualname__}"


def get_logger(job_class: type | str | None = None) -> JobLogger:
    """Get the logger for a job class, or the default logger.

    Args:
        job_class: Job class or its dotted name; falls back to the default
            logger when no logger was installed for it
    """
    global _default_logger
    if job_class is not None:
        job_logger = _job_loggers.get(_job_class_key(job_class))
        if job_logger is not None:
            return job_logger
    if _default_logger is None:
        _default_logger = RichConsoleLogger()
    return _default_logger


def set_logger(logger: JobLogger | None, job_class: type | str | None = None) -> None:
    """Set the default logger, or the logger of one job class.

    Args:
        logger: Logger to use, or None to reset to default
        job_class: Only use ``logger`` for this job class
    """
    global _default_logger
    if job_class is None:
        _default_logger = logger
    elif logger is None:
        _job_loggers.pop(_job_class_key(job_class), None)
    else:
        _job_loggers[_job_class_key(job_class)] = logger


def clear_job_loggers() -> None:
    """Remove all per job class loggers."""
    _job_loggers.clear()
