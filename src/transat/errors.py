"""Exception hierarchy shared by the history store, engine and binding."""

from __future__ import annotations

from typing import Optional


class TransatError(RuntimeError):
    """Base class for every error raised by transat."""


class UsageError(TransatError):
    """Raised when the API is driven in a way it does not support.

    Typical causes: reading the state handle outside an active provider
    scope, mutating before the first state arrived, or dispatching without a
    reducer.
    """


class OutOfRangeError(TransatError, IndexError):
    """Raised when a history index is negative, past the end, or evicted."""

    def __init__(
        self, message: str, *, index: int | None = None, length: int | None = None
    ) -> None:
        super().__init__(message)
        self.index = index
        self.length = length


class StaleTransactionError(TransatError):
    """Raised when a transaction outlives the history generation it was bound to."""

    def __init__(
        self, message: str, *, generation: int, current_generation: int
    ) -> None:
        super().__init__(message)
        self.generation = generation
        self.current_generation = current_generation


class StateShapeError(TransatError, TypeError):
    """Raised when a state cannot be fingerprinted (missing version, bad types)."""


class TokenFormatError(TransatError, ValueError):
    """Raised when a wire payload cannot be parsed into a token."""

    def __init__(self, message: str, *, payload: Optional[object] = None) -> None:
        super().__init__(message)
        self.payload = payload


__all__ = [
    "TransatError",
    "UsageError",
    "OutOfRangeError",
    "StaleTransactionError",
    "StateShapeError",
    "TokenFormatError",
]
