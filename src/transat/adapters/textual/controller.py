"""Minimal Textual adapter that wires provider events into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from transat.binding import TransatProvider
from transat.engine import (
    ConflictPolicy,
    OnConflict,
    StateChange,
    Transaction,
    ValidationResult,
)
from transat.state import Token


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualStateHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_state: Callable[[Any], None]
    update_status: Callable[[str], None] = _noop
    handle_event: Callable[[str, object | None], None] = _noop
    log: Callable[[str], None] = _noop


class TextualTransatAdapter:
    """Bridges a ``TransatProvider`` to a Textual-friendly surface.

    The adapter remembers the most recent transaction so key bindings can
    cancel or validate it.
    """

    def __init__(self, provider: TransatProvider[Any], hooks: TextualStateHooks) -> None:
        self.provider = provider
        self.hooks = hooks
        self.last_transaction: Optional[Transaction[Any]] = None
        self._unsubscribers = self._subscribe_events()
        self._refresh_state()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def apply(self, update: Callable[[Any], Any]) -> Optional[Transaction[Any]]:
        """Derive a new state from the current one and set it optimistically."""

        with self.provider.scope():
            current = self.provider.handle().state
            if current is None:
                self.hooks.update_status("no state yet")
                return None
            transaction = self.provider.handle().set_state(update(current))
        self.last_transaction = transaction
        self._log_state("apply ->", pre_index=transaction.pre_index)
        return transaction

    def cancel_last(self) -> bool:
        if self.last_transaction is None or self.last_transaction.stale:
            self.hooks.update_status("nothing to cancel")
            return False
        self.last_transaction.cancel()
        self._log_state("cancel ->", pre_index=self.last_transaction.pre_index)
        return True

    def validate_last(
        self,
        token: Token | Mapping[str, Any],
        *,
        on_conflict: OnConflict = ConflictPolicy.CANCEL,
    ) -> Optional[ValidationResult]:
        if self.last_transaction is None or self.last_transaction.stale:
            self.hooks.update_status("nothing to validate")
            return None
        result = self.last_transaction.validate(token, on_conflict=on_conflict)
        self.hooks.update_status("validated" if result.success else f"conflict: {result.error}")
        self._log_state("validate <-", success=result.success, error=result.error)
        return result

    def _subscribe_events(self) -> list[Callable[[], None]]:
        unsubscribers = [
            self.provider.subscribe("state.changed", self._on_state_changed)
        ]
        for event in (
            "state.resync",
            "state.error",
            "transaction.created",
            "transaction.cancelled",
            "transaction.validated",
            "transaction.conflict",
        ):
            unsubscribers.append(
                self.provider.subscribe(
                    event, lambda payload, name=event: self._handle_event(name, payload)
                )
            )
        return unsubscribers

    def _on_state_changed(self, payload: object | None) -> None:
        if isinstance(payload, StateChange):
            self._log_state("changed ->", reason=payload.reason, index=payload.index)
        self._refresh_state()

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name)
        self.hooks.handle_event(name, payload)
        if name == "state.error":
            self.hooks.update_status(f"fetch failed: {payload}")
        elif name == "state.resync":
            self.hooks.update_status("resynchronizing")

    def _refresh_state(self) -> None:
        self.hooks.update_state(self.provider.state)

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        history = self.provider.engine.history
        return {
            "provider": self.provider.name,
            "status": self.provider.status.value,
            "history_len": len(history),
            "generation": history.generation,
        }


__all__ = ["TextualTransatAdapter", "TextualStateHooks"]
