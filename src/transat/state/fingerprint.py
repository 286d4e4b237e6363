"""Deterministic ``{version, digest}`` tokens for state snapshots.

A backend confirms a client mutation by sending back the token of the state
it expects the client to converge to. Both sides must therefore agree on
the canonical serialization below byte for byte:

- JSON, UTF-8, object keys sorted, no insignificant whitespace
- NaN and Infinity rejected
- dataclass instances serialized as their field mapping

The digest is the first 8 bytes of the SHA-256 of those bytes, read as an
unsigned big-endian integer.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Mapping

from transat.errors import StateShapeError, TokenFormatError

DIGEST_BYTES = 8


@dataclass(frozen=True, slots=True)
class Token:
    """Compact fingerprint of one state snapshot."""

    version: int
    digest: int

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Token":
        """Parse the wire form ``{"version": int, "digest": int}``."""

        if not isinstance(payload, Mapping):
            raise TokenFormatError("token payload must be a mapping", payload=payload)
        values = {}
        for key in ("version", "digest"):
            value = payload.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TokenFormatError(
                    f"token field '{key}' must be an integer", payload=payload
                )
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, int]:
        return {"version": self.version, "digest": self.digest}


def _to_plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): _to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


def canonical_dumps(state: Any) -> str:
    """Return the canonical JSON text used for hashing ``state``."""

    try:
        return json.dumps(
            _to_plain(state),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise StateShapeError(f"state is not canonically serializable: {exc}") from exc


def state_version(state: Any) -> int:
    """Read the mandatory integer ``version`` of a state."""

    if isinstance(state, Mapping):
        version = state.get("version")
    else:
        version = getattr(state, "version", None)
    if isinstance(version, bool) or not isinstance(version, int):
        raise StateShapeError(
            f"state must carry an integer 'version', got {version!r}"
        )
    return version


def digest_of(text: str) -> int:
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(raw[:DIGEST_BYTES], "big")


def compute_token(state: Any) -> Token:
    """Fingerprint ``state`` as ``Token(version, digest)``."""

    return Token(version=state_version(state), digest=digest_of(canonical_dumps(state)))


def tokens_match(token: Token, state: Any) -> bool:
    return token == compute_token(state)


__all__ = [
    "Token",
    "canonical_dumps",
    "compute_token",
    "digest_of",
    "state_version",
    "tokens_match",
]
