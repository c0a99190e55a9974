"""Job Continuation - resumable, step-based background jobs.

Split a long-running job into named steps with cursors. When the worker
shuts down, the job stops at the next checkpoint, saves its progress and is
re-enqueued to continue where it left off.

Usage:
    from job_continuation import ContinuableJob, Step

    class ReindexJob(ContinuableJob, max_resumptions=20):
        def perform(self) -> None:
            self.step("prepare", self.prepare)
            self.step("reindex", self.reindex, start=0)

        def prepare(self) -> None:
            create_index()

        def reindex(self, step: Step) -> None:
            for document in documents_after(step.cursor):
                index(document)
                step.advance(from_=document.id)

    ReindexJob.perform_later()
"""

from job_continuation.adapters import InMemoryQueueAdapter, QueueAdapter
from job_continuation.bus import EventBus, LocalEventBus, NullEventBus
from job_continuation.config import (
    ContinuationConfig,
    ContinuationSettings,
    ResumeOptions,
    clear_settings_cache,
    get_settings,
)
from job_continuation.container import Container
from job_continuation.continuable import ContinuableJob, step_handler
from job_continuation.continuation import (
    Continuation,
    ContinuationState,
    build_continuation,
)
from job_continuation.events import (
    BaseEvent,
    Event,
    EventType,
    InterruptEvent,
    ResumeEvent,
    StepEvent,
    StepSkippedEvent,
    StepStartedEvent,
)
from job_continuation.exceptions import (
    CheckpointError,
    ContinuationError,
    Interrupt,
    InvalidStepError,
    ResumeLimitError,
    UnadvanceableCursorError,
    UnknownJobClassError,
)
from job_continuation.handlers import LogEventHandler
from job_continuation.job import Job, get_current_job
from job_continuation.logger import (
    JobLogger,
    ListLogger,
    NullLogger,
    RichConsoleLogger,
    clear_job_loggers,
    get_logger,
    set_logger,
)
from job_continuation.step import Step, successor

__version__ = "0.1.0"

__all__ = [
    # Jobs
    "Job",
    "ContinuableJob",
    "step_handler",
    "get_current_job",
    # Engine
    "Step",
    "successor",
    "Continuation",
    "ContinuationState",
    "build_continuation",
    # Config
    "ContinuationConfig",
    "ContinuationSettings",
    "ResumeOptions",
    "get_settings",
    "clear_settings_cache",
    # Runtime
    "Container",
    "QueueAdapter",
    "InMemoryQueueAdapter",
    "EventBus",
    "LocalEventBus",
    "NullEventBus",
    "LogEventHandler",
    # Logging
    "JobLogger",
    "RichConsoleLogger",
    "ListLogger",
    "NullLogger",
    "get_logger",
    "clear_job_loggers",
    "set_logger",
    # Events
    "BaseEvent",
    "Event",
    "EventType",
    "StepEvent",
    "StepStartedEvent",
    "StepSkippedEvent",
    "InterruptEvent",
    "ResumeEvent",
    # Errors
    "Interrupt",
    "ContinuationError",
    "InvalidStepError",
    "CheckpointError",
    "UnadvanceableCursorError",
    "ResumeLimitError",
    "UnknownJobClassError",
]
