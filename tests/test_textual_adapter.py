from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List

from transat.adapters.textual import TextualStateHooks, TextualTransatAdapter
from transat.adapters.textual.app import (
    _parse_args,
    bump_counter,
    file_fetcher,
    keep_higher_counter,
)
from transat.binding import TransatProvider
from transat.engine import ConflictPolicy, TransatConfig
from transat.state import Token, compute_token

STATIC = {"counter": 1, "version": 1}


def make_provider(server_state: Dict[str, Any] | None = None) -> TransatProvider[Dict[str, Any]]:
    remote = dict(server_state or {"counter": 10, "version": 4})

    async def fetch_state() -> Dict[str, Any]:
        return dict(remote)

    return TransatProvider(TransatConfig(fetch_state=fetch_state, state=dict(STATIC)))


def test_adapter_pushes_state_on_creation_and_apply() -> None:
    provider = make_provider()
    states: List[Any] = []
    adapter = TextualTransatAdapter(provider, TextualStateHooks(update_state=states.append))

    transaction = adapter.apply(bump_counter)

    assert transaction is not None
    assert states[0] == STATIC
    assert states[-1] == {"counter": 2, "version": 2}
    assert adapter.last_transaction is transaction


def test_adapter_cancel_last_restores_state() -> None:
    provider = make_provider()
    states: List[Any] = []
    adapter = TextualTransatAdapter(provider, TextualStateHooks(update_state=states.append))
    adapter.apply(bump_counter)

    assert adapter.cancel_last() is True
    assert states[-1] == STATIC


def test_adapter_reports_missing_transaction() -> None:
    statuses: List[str] = []
    adapter = TextualTransatAdapter(
        make_provider(),
        TextualStateHooks(update_state=lambda _: None, update_status=statuses.append),
    )

    assert adapter.cancel_last() is False
    assert adapter.validate_last(Token(1, 0)) is None
    assert statuses == ["nothing to cancel", "nothing to validate"]


def test_adapter_validate_last_reports_status() -> None:
    provider = make_provider()
    statuses: List[str] = []
    adapter = TextualTransatAdapter(
        provider,
        TextualStateHooks(update_state=lambda _: None, update_status=statuses.append),
    )
    transaction = adapter.apply(bump_counter)
    assert transaction is not None

    ok = adapter.validate_last(compute_token(transaction.attempted))
    assert ok is not None and ok.success
    assert statuses[-1] == "validated"

    adapter.apply(bump_counter)
    failed = adapter.validate_last(Token(3, 0), on_conflict=ConflictPolicy.REBASE)
    assert failed is not None and not failed.success
    assert statuses[-1].startswith("conflict:")
    assert provider.state == {"counter": 2, "version": 2}


def test_adapter_relays_events_and_logs() -> None:
    provider = make_provider()
    events: List[str] = []
    logs: List[str] = []
    adapter = TextualTransatAdapter(
        provider,
        TextualStateHooks(
            update_state=lambda _: None,
            handle_event=lambda name, _payload: events.append(name),
            log=logs.append,
        ),
    )

    adapter.apply(bump_counter)
    adapter.cancel_last()

    assert "transaction.created" in events
    assert "transaction.cancelled" in events
    assert any(line.startswith("apply ->") for line in logs)


def test_adapter_close_stops_updates() -> None:
    provider = make_provider()
    states: List[Any] = []
    adapter = TextualTransatAdapter(provider, TextualStateHooks(update_state=states.append))
    adapter.close()

    provider.engine.set_state({"counter": 5, "version": 5})

    assert states == [STATIC]


def test_cancel_policy_without_loop_resyncs_immediately() -> None:
    provider = make_provider({"counter": 42, "version": 9})
    adapter = TextualTransatAdapter(provider, TextualStateHooks(update_state=lambda _: None))
    adapter.apply(bump_counter)

    result = adapter.validate_last(Token(2, 0))

    assert result is not None and result.resync is None
    assert provider.state == {"counter": 42, "version": 9}


def test_merge_helper_keeps_higher_counter() -> None:
    merged = keep_higher_counter({"counter": 7, "version": 3}, {"counter": 2, "version": 4})

    assert merged == {"counter": 7, "version": 5}


def test_file_fetcher_reads_json(tmp_path: Path) -> None:
    state_file = tmp_path / "state.json"
    state_file.write_text(json.dumps({"counter": 3, "version": 2}), encoding="utf-8")

    assert asyncio.run(file_fetcher(state_file)()) == {"counter": 3, "version": 2}
    assert _parse_args([str(state_file), "--interval", "2.5"]).interval == 2.5
