"""Error kinds raised while decoding, validating and positioning tasks."""

from __future__ import annotations


class WikiGanttError(Exception):
    """Base class for recoverable errors: the operation is refused, state is unchanged."""


class MalformedTaskError(WikiGanttError):
    """A task record lacks a usable id or name; the whole input is rejected."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        if position is not None:
            message = f"task #{position}: {message}"
        super().__init__(message)
        self.position = position


class ValidationError(WikiGanttError):
    """User input for a task was refused before touching the task list."""

    def __init__(self, message: str, *, field: str = "") -> None:
        super().__init__(message)
        self.field = field


class UnknownReferenceError(ValidationError):
    """A parent or dependency id does not name a task in the list."""

    def __init__(self, kind: str, ref_id: int) -> None:
        super().__init__(f"Unknown {kind} task id: {ref_id}", field=kind)
        self.kind = kind
        self.ref_id = ref_id


class PositioningInvariantViolation(RuntimeError):
    """The flat pre-order layout is broken.

    Not a :class:`WikiGanttError`: it signals an internal consistency fault
    and must never be handled like a user input problem.
    """
