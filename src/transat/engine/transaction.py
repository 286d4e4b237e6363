"""Rollback/validate handles returned by every optimistic mutation."""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Generic, Mapping, Optional, TypeVar, Union

from transat.errors import StaleTransactionError, UsageError
from transat.state.fingerprint import Token, compute_token

if TYPE_CHECKING:  # pragma: no cover
    from .engine import TransactionEngine

T = TypeVar("T")

MergeFunction = Callable[[Any, Any], Any]


class ConflictPolicy(str, Enum):
    """Built-in strategies applied when validation fails."""

    CANCEL = "CANCEL"
    REBASE = "REBASE"


OnConflict = Union[ConflictPolicy, str, MergeFunction]


def coerce_policy(on_conflict: OnConflict) -> ConflictPolicy | MergeFunction:
    if isinstance(on_conflict, ConflictPolicy):
        return on_conflict
    if isinstance(on_conflict, str):
        try:
            return ConflictPolicy(on_conflict.upper())
        except ValueError as exc:
            raise UsageError(f"Unknown conflict policy '{on_conflict}'") from exc
    if callable(on_conflict):
        return on_conflict
    raise UsageError(f"on_conflict must be a policy or a merge callable, got {on_conflict!r}")


@dataclass(slots=True)
class ValidationResult:
    """Outcome of ``Transaction.validate``.

    ``resync`` holds the task of a scheduled CANCEL resynchronization when
    one was started on a running loop. The displayed state has not
    necessarily changed when ``validate`` returns.
    """

    success: bool
    expected: Token
    error: Optional[str] = None
    resync: Optional[asyncio.Task[Any]] = None


class Transaction(Generic[T]):
    """Handle bound to the state active before a mutation and the attempted state."""

    def __init__(self, engine: "TransactionEngine[T]", pre_index: int, attempted: T) -> None:
        self._engine = engine
        self.pre_index = pre_index
        self.attempted = attempted
        self.generation = engine.history.generation
        engine.history.pin(pre_index)
        self._pin = weakref.finalize(
            self, engine.history.unpin, self.generation, pre_index
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(pre_index={self.pre_index}, generation={self.generation}, "
            f"released={not self._pin.alive})"
        )

    @property
    def stale(self) -> bool:
        return self.generation != self._engine.history.generation

    def _ensure_fresh(self) -> None:
        if self.stale:
            raise StaleTransactionError(
                f"transaction from history generation {self.generation} is stale",
                generation=self.generation,
                current_generation=self._engine.history.generation,
            )

    def release(self) -> None:
        """Let the history evict the pre-mutation snapshot again."""

        self._pin()

    def cancel(self) -> None:
        """Show the pre-mutation snapshot again without growing history."""

        self._ensure_fresh()
        self._engine.restore(self.pre_index, reason="cancel")
        self._engine.bus.emit("transaction.cancelled", self)

    def validate(
        self,
        token: Token | Mapping[str, Any],
        *,
        on_conflict: OnConflict = ConflictPolicy.CANCEL,
    ) -> ValidationResult:
        """Check a server-issued token against the attempted state.

        A mismatch is reported through the result, never raised; the
        selected policy then replaces the current state.
        """

        self._ensure_fresh()
        policy = coerce_policy(on_conflict)
        if not isinstance(token, Token):
            token = Token.from_mapping(token)
        expected = compute_token(self.attempted)
        if token == expected:
            self.release()
            self._engine.bus.emit("transaction.validated", self)
            return ValidationResult(success=True, expected=expected)

        error = _describe_mismatch(token, expected)
        resync = self._engine.resolve_conflict(self, policy, error=error)
        return ValidationResult(success=False, expected=expected, error=error, resync=resync)


def _describe_mismatch(received: Token, expected: Token) -> str:
    if received.version != expected.version:
        return f"version mismatch: server {received.version}, local {expected.version}"
    return f"digest mismatch at version {expected.version}"


__all__ = [
    "ConflictPolicy",
    "MergeFunction",
    "OnConflict",
    "Transaction",
    "ValidationResult",
    "coerce_policy",
]
