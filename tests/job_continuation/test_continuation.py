"""Tests for the Continuation state machine, using a fake host job."""

from typing import Any, NoReturn

import pytest

from job_continuation.continuation import (
    Continuation,
    ContinuationState,
    build_continuation,
)
from job_continuation.events import EventType
from job_continuation.exceptions import Interrupt, InvalidStepError
from job_continuation.step import Step


class FakeHost:
    """Host job that records events and stops when told to."""

    def __init__(self) -> None:
        self.events: list[tuple[EventType, dict[str, Any]]] = []
        self.stopping = False
        self.interrupts: list[str] = []

    def checkpoint(self) -> None:
        if self.stopping:
            self.interrupt("stopping")

    def interrupt(self, reason: str) -> NoReturn:
        self.interrupts.append(reason)
        raise Interrupt(f"Interrupted ({reason})", reason=reason)

    def instrument(self, event_type: EventType, **payload: Any) -> None:
        self.events.append((event_type, payload))

    def event_types(self) -> list[EventType]:
        return [event_type for event_type, _ in self.events]


def noop(step: Step) -> None:
    pass


class TestContinuationRun:
    """Tests for running and skipping steps."""

    def setup_method(self) -> None:
        self.host = FakeHost()

    def test_not_started(self) -> None:
        continuation = build_continuation(self.host)

        assert continuation.started is False
        assert continuation.advanced is False
        assert continuation.description == "not started"
        assert continuation.to_dict() == {"completed": []}

    def test_runs_steps_in_order(self) -> None:
        continuation = build_continuation(self.host, {})
        calls: list[str] = []

        continuation.step("a", lambda step: calls.append(step.name))
        continuation.step("b", lambda step: calls.append(step.name))

        assert calls == ["a", "b"]
        assert continuation.completed == ["a", "b"]
        assert continuation.encountered == ["a", "b"]
        assert continuation.current is None
        assert continuation.advanced is True
        assert continuation.description == "after 'b'"
        assert continuation.to_dict() == {"completed": ["a", "b"]}

    def test_start_sets_initial_cursor(self) -> None:
        continuation = build_continuation(self.host)
        seen: list[Any] = []

        continuation.step("iterate", lambda step: seen.append(step.cursor), start=10)

        assert seen == [10]

    def test_skips_completed_steps(self) -> None:
        continuation = build_continuation(self.host, {"completed": ["a"]})
        calls: list[str] = []

        continuation.step("a", lambda step: calls.append("a"))
        continuation.step("b", lambda step: calls.append("b"))

        assert calls == ["b"]
        assert continuation.completed == ["a", "b"]
        assert self.host.events[0] == (EventType.STEP_SKIPPED, {"step_name": "a"})

    def test_skipping_does_not_advance(self) -> None:
        continuation = build_continuation(self.host, {"completed": ["a", "b"]})

        continuation.step("a", noop)
        continuation.step("b", noop)

        assert continuation.advanced is False

    def test_resumes_current_step_with_cursor(self) -> None:
        continuation = build_continuation(
            self.host, {"completed": ["a"], "current": ["b", 5]}
        )
        seen: list[Step] = []

        assert continuation.started is True
        assert continuation.description == "at 'b', cursor '5'"

        continuation.step("a", noop)
        continuation.step("b", seen.append, start=0)

        assert seen[0].cursor == 5
        assert seen[0].resumed is True
        assert continuation.to_dict() == {"completed": ["a", "b"]}

    def test_instruments_steps(self) -> None:
        continuation = build_continuation(self.host)

        continuation.step("a", lambda step: step.set(3), start=0)

        assert self.host.event_types() == [EventType.STEP_STARTED, EventType.STEP]
        started = self.host.events[0][1]
        assert started == {"step_name": "a", "cursor": 0, "resumed": False}
        finished = self.host.events[1][1]
        assert finished["cursor"] == 3
        assert finished["interrupted"] is False
        assert finished["error"] is None


class TestContinuationInterrupts:
    """Tests for interrupts inside and between steps."""

    def setup_method(self) -> None:
        self.host = FakeHost()

    def test_interrupt_keeps_current_step(self) -> None:
        continuation = build_continuation(self.host)

        def handler(step: Step) -> None:
            step.set(1)
            self.host.stopping = True
            step.advance()

        with pytest.raises(Interrupt):
            continuation.step("b", handler, start=0)

        assert continuation.completed == []
        assert continuation.to_dict() == {"completed": [], "current": ["b", 2]}
        assert continuation.advanced is True
        assert self.host.events[-1][1]["interrupted"] is True

    def test_interrupt_without_cursor_progress_does_not_advance(self) -> None:
        continuation = build_continuation(self.host)
        self.host.stopping = True

        with pytest.raises(Interrupt):
            continuation.step("delete", lambda step: step.checkpoint())

        assert continuation.advanced is False
        assert continuation.to_dict() == {"completed": [], "current": ["delete", None]}

    def test_error_after_progress_marks_advanced(self) -> None:
        continuation = build_continuation(self.host)

        def handler(step: Step) -> None:
            step.set(1)
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            continuation.step("a", handler)

        assert continuation.advanced is True
        assert continuation.to_dict()["current"] == ["a", 1]
        assert self.host.events[-1][1]["error"] == "boom"

    def test_error_without_progress(self) -> None:
        continuation = build_continuation(self.host)

        def handler(step: Step) -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError):
            continuation.step("a", handler)

        assert continuation.advanced is False

    def test_step_can_catch_exceptions_without_absorbing_interrupt(self) -> None:
        continuation = build_continuation(self.host)

        def handler(step: Step) -> None:
            try:
                self.host.stopping = True
                step.checkpoint()
            except Exception:
                pass

        with pytest.raises(Interrupt):
            continuation.step("a", handler)

    def test_isolated_step_interrupts_after_progress(self) -> None:
        continuation = build_continuation(self.host)
        calls: list[str] = []

        continuation.step("quick1", lambda step: calls.append("quick1"))
        with pytest.raises(Interrupt):
            continuation.step("slow", lambda step: calls.append("slow"), isolated=True)

        assert calls == ["quick1"]
        assert self.host.interrupts == ["isolating"]
        assert continuation.to_dict() == {"completed": ["quick1"]}

    def test_isolated_step_runs_first_in_attempt(self) -> None:
        continuation = build_continuation(self.host, {"completed": ["quick1"]})
        calls: list[str] = []

        continuation.step("quick1", lambda step: calls.append("quick1"))
        continuation.step("slow", lambda step: calls.append("slow"), isolated=True)
        with pytest.raises(Interrupt):
            continuation.step("quick2", lambda step: calls.append("quick2"))

        assert calls == ["slow"]
        assert continuation.to_dict() == {"completed": ["quick1", "slow"]}


class TestContinuationValidation:
    """Tests for replay-order validation."""

    def setup_method(self) -> None:
        self.host = FakeHost()

    def test_name_must_be_str(self) -> None:
        continuation = build_continuation(self.host)

        with pytest.raises(InvalidStepError) as exc_info:
            continuation.step(1, noop)  # type: ignore[arg-type]

        assert exc_info.value.message == "Step '1' must be a str, found 'int'"

    def test_duplicate_step(self) -> None:
        continuation = build_continuation(self.host)
        continuation.step("duplicate", noop)

        with pytest.raises(InvalidStepError, match="has already been encountered"):
            continuation.step("duplicate", noop)

    def test_nested_step(self) -> None:
        continuation = build_continuation(self.host)

        with pytest.raises(InvalidStepError) as exc_info:
            continuation.step("outer", lambda step: continuation.step("inner", noop))

        assert exc_info.value.message == "Step 'inner' is nested inside step 'outer'"
        assert continuation.completed == []

    def test_unexpected_step_on_resumption(self) -> None:
        continuation = build_continuation(self.host, {"completed": [], "current": ["iterating", 2]})

        with pytest.raises(InvalidStepError) as exc_info:
            continuation.step("unexpected", noop)

        assert exc_info.value.message == "Step 'unexpected' found, expected to resume from 'iterating'"

    def test_changed_step_order(self) -> None:
        continuation = build_continuation(self.host, {"completed": ["one", "two", "three"]})
        continuation.step("one", noop)
        continuation.step("two", noop)

        with pytest.raises(InvalidStepError) as exc_info:
            continuation.step("two_and_a_half", noop)

        assert exc_info.value.message == "Step 'two_and_a_half' found, expected to see 'three'"

    def test_replay_out_of_order(self) -> None:
        continuation = build_continuation(self.host, {"completed": ["A"]})

        with pytest.raises(InvalidStepError, match="expected to see 'A'"):
            continuation.step("B", noop)

    def test_invalid_persisted_state(self) -> None:
        with pytest.raises(InvalidStepError, match="Invalid continuation state"):
            build_continuation(self.host, {"completed": ["a", "a"]})

    def test_current_step_already_completed(self) -> None:
        with pytest.raises(InvalidStepError) as exc_info:
            build_continuation(self.host, {"completed": ["A"], "current": ["A", 3]})

        assert exc_info.value.message.startswith("Invalid continuation state")
        assert "step 'A' is both completed and in progress" in exc_info.value.message

    def test_accepts_parsed_state(self) -> None:
        state = ContinuationState(completed=["a"], current=("b", [1, 2]))

        continuation = build_continuation(self.host, state)

        assert isinstance(continuation, Continuation)
        assert continuation.to_dict() == {"completed": ["a"], "current": ["b", [1, 2]]}
