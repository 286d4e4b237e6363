"""Fingerprinting and snapshot history."""

from .fingerprint import (
    Token,
    canonical_dumps,
    compute_token,
    digest_of,
    state_version,
    tokens_match,
)
from .history import StateHistory

__all__ = [
    "Token",
    "StateHistory",
    "canonical_dumps",
    "compute_token",
    "digest_of",
    "state_version",
    "tokens_match",
]
