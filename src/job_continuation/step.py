"""Resumable step handle.

A Step is what a step handler receives. It carries the step's cursor, an
opaque progress marker that is persisted when the job is interrupted and
handed back when the step resumes.

Usage:
    def perform(self) -> None:
        self.step("import_rows", self.import_rows, start=0)

    def import_rows(self, step: Step) -> None:
        for row in rows[step.cursor:]:
            store(row)
            step.advance()
"""

import functools
from collections.abc import Callable
from typing import Any

from job_continuation.exceptions import UnadvanceableCursorError



@functools.singledispatch
def successor(cursor: Any) -> Any:
    """Return the cursor value that follows ``cursor``.

    Register additional cursor types with ``successor.register``.

    Raises:
        UnadvanceableCursorError: If the cursor type has no successor
    """
    raise UnadvanceableCursorError(type(cursor).__name__)


@successor.register
def _(cursor: int) -> int:
    return cursor + 1


@successor.register
def _(cursor: bool) -> bool:
    raise UnadvanceableCursorError(type(cursor).__name__)


class Step:
    """Handle for one named, checkpointable unit of work.

    Attributes:
        name: Step name, unique within the job's step sequence
        resumed: True if restored from persisted progress
    """

    def __init__(
        self,
        name: str,
        cursor: Any = None,
        *,
        resumed: bool = False,
        checkpoint: Callable[[], None] | None = None,
    ) -> None:
        self.name = name
        self.resumed = resumed
        self._cursor = cursor
        self._checkpoint = checkpoint
        self._advanced = False
        self._completed = False

    @property
    def cursor(self) -> Any:
        """Current progress marker."""
        return self._cursor

    @property
    def advanced(self) -> bool:
        """True once the cursor was set or advanced, or the step completed."""
        return self._advanced or self._completed

    @property
    def completed(self) -> bool:
        return self._completed

    def set(self, value: Any) -> None:
        """Set the cursor to ``value`` and checkpoint.

        Raises:
            Interrupt: If the job should stop at this checkpoint
        """
        self._cursor = value
        self._advanced = True
        self.checkpoint()

    def advance(self, from_: Any = None) -> None:
        """Move the cursor forward and checkpoint.

        Args:
            from_: Cursor value to move to. When omitted or None the cursor moves to
                its successor (``n + 1`` for integers).

        Raises:
            UnadvanceableCursorError: If no ``from_`` is given and the cursor
                type has no successor
            Interrupt: If the job should stop at this checkpoint
        """
        value = successor(self._cursor) if from_ is None else from_
        self.set(value)

    def checkpoint(self) -> None:
        """Give the job a chance to stop here without moving the cursor."""
        if self._checkpoint is not None:
            self._checkpoint()

    def mark_completed(self) -> None:
        self._completed = True

    @property
    def description(self) -> str:
        return f"at '{self.name}', cursor '{self._cursor!r}'"

    def to_list(self) -> list[Any]:
        """Serialized ``[name, cursor]`` pair."""
        return [self.name, self._cursor]

    def __repr__(self) -> str:
        return (
            f"Step(name={self.name!r}, cursor={self._cursor!r}, "
            f"resumed={self.resumed}, advanced={self.advanced})"
        )
