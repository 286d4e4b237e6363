"""Optimistic state synchronization with rollback and fingerprint validation."""

from transat.binding import StateHandle, TransatBinding, TransatProvider, create_transat
from transat.engine import (
    ConflictPolicy,
    StateBus,
    StateChange,
    SyncStatus,
    Transaction,
    TransactionEngine,
    TransatConfig,
    ValidationResult,
)
from transat.errors import (
    OutOfRangeError,
    StaleTransactionError,
    StateShapeError,
    TokenFormatError,
    TransatError,
    UsageError,
)
from transat.state import StateHistory, Token, canonical_dumps, compute_token

__all__ = [
    "ConflictPolicy",
    "OutOfRangeError",
    "StaleTransactionError",
    "StateBus",
    "StateChange",
    "StateHandle",
    "StateHistory",
    "StateShapeError",
    "SyncStatus",
    "Token",
    "TokenFormatError",
    "Transaction",
    "TransactionEngine",
    "TransatBinding",
    "TransatConfig",
    "TransatError",
    "TransatProvider",
    "UsageError",
    "ValidationResult",
    "canonical_dumps",
    "compute_token",
    "create_transat",
]

__version__ = "0.1.0"
