"""bounded undo/redo over whole-value snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

MAX_UNDO_HISTORY = 50


@dataclass
class HistoryState(Generic[T]):
    """past snapshots (oldest first), the present value, and redo futures."""

    present: T
    past: list[T] = field(default_factory=list)
    future: list[T] = field(default_factory=list)


class HistoryStore(Generic[T]):
    """undo/redo stack around a value that is replaced, never mutated.

    pushes that produce the same object or an equal value are dropped, so
    no-op edits never show up as undo steps.
    """

    def __init__(self, initial: T, max_history: int = MAX_UNDO_HISTORY):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._past: list[T] = []
        self._present: T = initial
        self._future: list[T] = []

    @property
    def present(self) -> T:
        return self._present

    @property
    def state(self) -> HistoryState[T]:
        return HistoryState(present=self._present, past=list(self._past), future=list(self._future))

    @property
    def can_undo(self) -> bool:
        return len(self._past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) > 0

    @property
    def history_length(self) -> int:
        return len(self._past)

    @property
    def future_length(self) -> int:
        return len(self._future)

    def push(self, producer: Callable[[T], T]) -> bool:
        """record producer(present) as the new present. returns True if recorded."""
        next_value = producer(self._present)
        if next_value is self._present or next_value == self._present:
            return False

        self._past.append(self._present)
        if len(self._past) > self.max_history:
            del self._past[: len(self._past) - self.max_history]
        self._present = next_value
        self._future = []
        return True

    def undo(self) -> bool:
        """step back one snapshot. returns True if there was one."""
        if not self._past:
            return False
        self._future.insert(0, self._present)
        self._present = self._past.pop()
        return True

    def redo(self) -> bool:
        """step forward one snapshot. returns True if there was one."""
        if not self._future:
            return False
        self._past.append(self._present)
        self._present = self._future.pop(0)
        return True

    def reset(self, value: T) -> None:
        """replace the present and forget all history (new document)."""
        self._past = []
        self._present = value
        self._future = []

    def clear(self) -> None:
        """forget history but keep the present."""
        self._past = []
        self._future = []
