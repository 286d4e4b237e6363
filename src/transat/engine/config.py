"""Configuration accepted by the provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .bus import StateBus
from .engine import FetchState, Reducer, TransactionEngine


@dataclass(slots=True)
class TransatConfig:
    """Options for one provider/engine pair.

    ``state`` seeds history index 0 until the mount fetch resolves;
    ``loading_state`` does the same when no static state is given.
    ``error_state`` replaces the current state whenever a fetch fails.
    ``fetch_state_interval`` is in seconds.
    """

    fetch_state: FetchState
    state: Any = None
    loading_state: Any = None
    error_state: Any = None
    reducer: Optional[Reducer] = None
    fetch_state_interval: Optional[float] = None
    history_depth: Optional[int] = None

    def __post_init__(self) -> None:
        if not callable(self.fetch_state):
            raise TypeError("fetch_state must be an async callable")
        if self.reducer is not None and not callable(self.reducer):
            raise TypeError("reducer must be callable")
        if self.fetch_state_interval is not None and self.fetch_state_interval <= 0:
            raise ValueError("fetch_state_interval must be positive")
        if self.history_depth is not None and self.history_depth < 1:
            raise ValueError("history_depth must be at least 1")

    @property
    def initial_state(self) -> Any:
        return self.state if self.state is not None else self.loading_state

    def build_engine(
        self, *, bus: Optional[StateBus] = None, logger_name: Optional[str] = None
    ) -> TransactionEngine[Any]:
        return TransactionEngine(
            self.fetch_state,
            history_depth=self.history_depth,
            reducer=self.reducer,
            error_state=self.error_state,
            bus=bus,
            logger_name=logger_name,
        )


__all__ = ["TransatConfig"]
