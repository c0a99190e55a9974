"""Event models for job continuation instrumentation.

Every decision the continuation engine makes is published as an event:
- step_started / step: a step handler began / finished running
- step_skipped: a step was already completed in an earlier attempt
- interrupt: the attempt is stopping at a checkpoint
- resume: an attempt starts from previously persisted progress

Handlers subscribed on the EventBus turn these into log lines, metrics, etc.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Event type enumeration."""

    STEP = "step"
    STEP_STARTED = "step_started"
    STEP_SKIPPED = "step_skipped"
    INTERRUPT = "interrupt"
    RESUME = "resume"


class BaseEvent(BaseModel):
    """Base event with common fields.

    Events are immutable (frozen=True) because they represent facts about
    what happened during an attempt.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    job_class: str
    job_id: str


class StepEvent(BaseEvent):
    """Emitted when a step handler stops running, normally or not."""

    event_type: EventType = EventType.STEP
    step_name: str
    cursor: Any = None
    interrupted: bool = False
    error: str | None = None
    duration_seconds: float = 0.0


class StepStartedEvent(BaseEvent):
    """Emitted right before a step handler is called."""

    event_type: EventType = EventType.STEP_STARTED
    step_name: str
    cursor: Any = None
    resumed: bool = False


class StepSkippedEvent(BaseEvent):
    """Emitted when a step completed in an earlier attempt is skipped."""

    event_type: EventType = EventType.STEP_SKIPPED
    step_name: str


class InterruptEvent(BaseEvent):
    """Emitted when an attempt is interrupted at a checkpoint."""

    event_type: EventType = EventType.INTERRUPT
    description: str
    reason: str


class ResumeEvent(BaseEvent):
    """Emitted when an attempt resumes from persisted progress."""

    event_type: EventType = EventType.RESUME
    description: str
    resumptions: int


Event = StepEvent | StepStartedEvent | StepSkippedEvent | InterruptEvent | ResumeEvent

EVENT_MODELS: dict[EventType, type[BaseEvent]] = {
    EventType.STEP: StepEvent,
    EventType.STEP_STARTED: StepStartedEvent,
    EventType.STEP_SKIPPED: StepSkippedEvent,
    EventType.INTERRUPT: InterruptEvent,
    EventType.RESUME: ResumeEvent,
}
