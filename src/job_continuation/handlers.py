"""Event handlers for job continuation.

LogEventHandler turns continuation events into human-readable log lines,
written through the current JobLogger (Rich console by default).
"""

from rich.markup import escape

from job_continuation.events import (
    Event,
    EventType,
    InterruptEvent,
    ResumeEvent,
    StepEvent,
    StepSkippedEvent,
    StepStartedEvent,
)
from job_continuation.logger import JobLogger, get_logger


class LogEventHandler:
    """Writes one log line per continuation event.

    The logger is resolved on every event, per job class, unless one is
    given, so ``set_logger()`` takes effect for handlers that are already
    subscribed.
    """

    def __init__(self, logger: JobLogger | None = None) -> None:
        self._logger = logger

    def _print(self, event: Event, message: str) -> None:
        logger = self._logger or get_logger(event.job_class)
        logger.print(message)

    def __call__(self, event: Event) -> None:
        """Handle an event by logging it."""
        match event.event_type:
            case EventType.STEP_STARTED:
                self._handle_step_started(event)  # type: ignore[arg-type]
            case EventType.STEP:
                self._handle_step(event)  # type: ignore[arg-type]
            case EventType.STEP_SKIPPED:
                self._handle_step_skipped(event)  # type: ignore[arg-type]
            case EventType.INTERRUPT:
                self._handle_interrupt(event)  # type: ignore[arg-type]
            case EventType.RESUME:
                self._handle_resume(event)  # type: ignore[arg-type]
            case _:
                pass

    def _handle_step_started(self, event: StepStartedEvent) -> None:
        if event.resumed:
            self._print(
                event,
                f"[bold blue]►[/] Step '{escape(event.step_name)}' resumed from cursor "
                f"'{escape(repr(event.cursor))}'"
            )
        else:
            self._print(event, f"[bold blue]►[/] Step '{escape(event.step_name)}' started")

    def _handle_step(self, event: StepEvent) -> None:
        name = escape(event.step_name)
        cursor = escape(repr(event.cursor))
        if event.interrupted:
            self._print(event, f"[yellow]‖[/] Step '{name}' interrupted at cursor '{cursor}'")
        elif event.error is not None:
            self._print(
                event,
                f"[bold red]✗[/] Error during step '{name}' at cursor '{cursor}': "
                f"{escape(event.error)}"
            )
        else:
            self._print(
                event,
                f"[bold green]✓[/] Step '{name}' completed ({event.duration_seconds:.2f}s)"
            )

    def _handle_step_skipped(self, event: StepSkippedEvent) -> None:
        self._print(event, f"[dim]⊘[/] Step '{escape(event.step_name)}' skipped")

    def _handle_interrupt(self, event: InterruptEvent) -> None:
        self._print(
            event,
            f"[yellow]↻[/] Interrupted {escape(event.job_class)} (Job ID: {event.job_id}) "
            f"{escape(event.description)} ({escape(event.reason)})"
        )

    def _handle_resume(self, event: ResumeEvent) -> None:
        self._print(
            event,
            f"[bold blue]▶[/] Resuming {escape(event.job_class)} (Job ID: {event.job_id}) "
            f"{escape(event.description)}"
        )
