"""Transaction engine, transaction handles and configuration."""

from .bus import StateBus, StateChange
from .config import TransatConfig
from .engine import FetchState, Reducer, SyncStatus, TransactionEngine
from .transaction import (
    ConflictPolicy,
    MergeFunction,
    OnConflict,
    Transaction,
    ValidationResult,
)

__all__ = [
    "StateBus",
    "StateChange",
    "TransatConfig",
    "FetchState",
    "Reducer",
    "SyncStatus",
    "TransactionEngine",
    "ConflictPolicy",
    "MergeFunction",
    "OnConflict",
    "Transaction",
    "ValidationResult",
]
