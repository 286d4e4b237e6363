from __future__ import annotations

import hashlib
from dataclasses import dataclass

import pytest

from transat.errors import StateShapeError, TokenFormatError
from transat.state import Token, canonical_dumps, compute_token, state_version, tokens_match


@dataclass
class Profile:
    name: str
    tags: tuple[str, ...]
    version: int


def test_canonical_dumps_sorts_keys_without_whitespace() -> None:
    assert canonical_dumps({"version": 1, "hello": "world"}) == '{"hello":"world","version":1}'


def test_digest_is_truncated_sha256_of_canonical_bytes() -> None:
    raw = hashlib.sha256(b'{"hello":"world","version":1}').digest()

    token = compute_token({"version": 1, "hello": "world"})

    assert token == Token(version=1, digest=int.from_bytes(raw[:8], "big"))


def test_compute_token_is_deterministic() -> None:
    state = {"hello": "world", "nested": {"b": [1, 2], "a": None}, "version": 3}

    assert compute_token(state) == compute_token(dict(state))


def test_key_order_does_not_change_token() -> None:
    first = {"a": 1, "b": {"x": 1, "y": 2}, "version": 1}
    second = {"version": 1, "b": {"y": 2, "x": 1}, "a": 1}

    assert compute_token(first) == compute_token(second)


def test_states_differing_in_one_field_have_different_digests() -> None:
    world = compute_token({"hello": "world", "version": 1})
    sailor = compute_token({"hello": "sailor", "version": 1})

    assert world.version == sailor.version
    assert world.digest != sailor.digest


def test_dataclass_state_matches_equivalent_mapping() -> None:
    profile = Profile(name="ada", tags=("x", "y"), version=2)

    assert compute_token(profile) == compute_token(
        {"name": "ada", "tags": ["x", "y"], "version": 2}
    )
    assert state_version(profile) == 2


@pytest.mark.parametrize(
    "state",
    [{"hello": "world"}, {"version": "1"}, {"version": True}, object()],
)
def test_state_without_integer_version_is_rejected(state: object) -> None:
    with pytest.raises(StateShapeError):
        compute_token(state)


def test_non_finite_numbers_are_rejected() -> None:
    with pytest.raises(StateShapeError):
        canonical_dumps({"value": float("nan"), "version": 1})


def test_token_wire_format() -> None:
    token = Token.from_mapping({"version": 4, "digest": 99})

    assert token == Token(4, 99)
    assert token.to_dict() == {"version": 4, "digest": 99}


@pytest.mark.parametrize(
    "payload",
    [{"version": 1}, {"version": 1, "digest": "abc"}, {"version": None, "digest": 2}, [1, 2]],
)
def test_malformed_token_payload(payload: object) -> None:
    with pytest.raises(TokenFormatError):
        Token.from_mapping(payload)  # type: ignore[arg-type]


def test_tokens_match_helper() -> None:
    state = {"hello": "world", "version": 1}

    assert tokens_match(compute_token(state), state)
    assert not tokens_match(Token(version=1, digest=0), state)
