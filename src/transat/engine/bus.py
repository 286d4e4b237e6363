"""Event bus through which hosts observe engine activity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass(slots=True)
class StateChange:
    """Payload of ``state.changed``."""

    state: Any
    reason: str
    index: Optional[int]
    generation: int


class StateBus:
    """Minimal synchronous pub/sub keyed by event name."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, list[Callable[[object], None]]] = {}

    def subscribe(self, event: str, callback: Callable[[object], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it."""

        self._subscribers.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in list(self._subscribers.get(event, [])):
            callback(payload)


__all__ = ["StateBus", "StateChange"]
