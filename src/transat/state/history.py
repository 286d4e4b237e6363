"""Append-only snapshot history used as the rollback source of truth."""

from __future__ import annotations

from collections import Counter, deque
from typing import Deque, Generic, Iterator, Optional, Tuple, TypeVar

from transat.errors import OutOfRangeError

T = TypeVar("T")


class StateHistory(Generic[T]):
    """Linear history of state snapshots with absolute, stable indices.

    ``depth`` bounds how many snapshots are retained. Eviction removes the
    oldest snapshots first but stops at the oldest index still pinned by a
    live transaction, so a retained bound may temporarily be exceeded.
    ``reset`` starts a new generation; pins from older generations are
    ignored from then on.
    """

    def __init__(self, *, depth: Optional[int] = None) -> None:
        if depth is not None and depth < 1:
            raise ValueError("history depth must be at least 1")
        self.depth = depth
        self._entries: Deque[T] = deque()
        self._first: int = 0
        self._generation: int = 0
        self._pins: Counter[int] = Counter()

    def __len__(self) -> int:
        return self._first + len(self._entries)

    def __iter__(self) -> Iterator[Tuple[int, T]]:
        for offset, state in enumerate(self._entries):
            yield self._first + offset, state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def first_index(self) -> int:
        return self._first

    @property
    def retained(self) -> int:
        return len(self._entries)

    def append(self, state: T) -> int:
        self._entries.append(state)
        index = len(self) - 1
        self._enforce_depth()
        return index

    def get(self, index: int) -> T:
        if index < 0 or index >= len(self):
            raise OutOfRangeError(
                f"history index {index} out of range (length {len(self)})",
                index=index,
                length=len(self),
            )
        if index < self._first:
            raise OutOfRangeError(
                f"history index {index} was evicted (oldest retained {self._first})",
                index=index,
                length=len(self),
            )
        return self._entries[index - self._first]

    def latest_index(self) -> Optional[int]:
        if not self._entries:
            return None
        return len(self) - 1

    def latest(self) -> T:
        index = self.latest_index()
        if index is None:
            raise OutOfRangeError("history is empty", index=None, length=0)
        return self._entries[-1]

    def reset(self, state: Optional[T] = None) -> int:
        """Drop every snapshot and start a new generation."""

        self._entries.clear()
        self._first = 0
        self._pins.clear()
        self._generation += 1
        if state is not None:
            self._entries.append(state)
        return self._generation

    def pin(self, index: int) -> None:
        self._pins[index] += 1

    def unpin(self, generation: int, index: int) -> None:
        if generation != self._generation or self._pins[index] <= 0:
            return
        self._pins[index] -= 1
        if self._pins[index] == 0:
            del self._pins[index]
        self._enforce_depth()

    def oldest_pinned(self) -> Optional[int]:
        return min(self._pins) if self._pins else None

    def _enforce_depth(self) -> None:
        if self.depth is None:
            return
        floor = self.oldest_pinned()
        while len(self._entries) > self.depth:
            if floor is not None and self._first >= floor:
                break
            self._entries.popleft()
            self._first += 1


__all__ = ["StateHistory"]
