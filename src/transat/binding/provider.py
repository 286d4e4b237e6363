"""Provider/accessor pair exposing engine state to consumers.

``create_transat`` returns a provider that owns its own engine plus a
``use_transat`` accessor bound to that provider. The accessor only works
while the provider is active in the calling context: inside
``async with provider:`` (or after ``await provider.mount()`` in the same
task) or inside ``with provider.scope():``.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager, suppress
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, NamedTuple, Optional, Tuple, TypeVar

from transat.engine import (
    StateBus,
    SyncStatus,
    Transaction,
    TransactionEngine,
    TransatConfig,
)
from transat.errors import UsageError
from transat.runtime import telemetry

T = TypeVar("T")

_ACTIVE_PROVIDERS: ContextVar[Tuple["TransatProvider[Any]", ...]] = ContextVar(
    "transat_active_providers", default=()
)


@dataclass(slots=True)
class StateHandle(Generic[T]):
    """What a consumer sees: the current state and the mutation entry points."""

    state: Optional[T]
    set_state: Callable[[T], Transaction[T]]
    dispatch: Callable[[Any], Transaction[T]]


class TransatProvider(Generic[T]):
    """Owns a ``TransactionEngine`` and the refresh lifecycle around it."""

    def __init__(
        self,
        config: TransatConfig,
        *,
        name: str = "default",
        bus: Optional[StateBus] = None,
    ) -> None:
        self.config = config
        self.name = name
        self.engine: TransactionEngine[T] = config.build_engine(
            bus=bus, logger_name=f"transat.{name}"
        )
        self._mounted = False
        self._poll_task: asyncio.Task[None] | None = None

        initial = config.initial_state
        if initial is not None:
            self.engine.install(initial, reset=True, reason="initial")
            self.engine.status = (
                SyncStatus.READY if config.state is not None else SyncStatus.LOADING
            )

    @property
    def state(self) -> Optional[T]:
        return self.engine.state

    @property
    def status(self) -> SyncStatus:
        return self.engine.status

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def active(self) -> bool:
        return any(p is self for p in _ACTIVE_PROVIDERS.get())

    def handle(self) -> StateHandle[T]:
        return StateHandle(
            state=self.engine.state,
            set_state=self.engine.set_state,
            dispatch=self.engine.dispatch,
        )

    def subscribe(self, event: str, callback: Callable[[object], None]) -> Callable[[], None]:
        return self.engine.bus.subscribe(event, callback)

    @contextmanager
    def scope(self) -> Iterator["TransatProvider[T]"]:
        """Activate the provider for the current context without fetching."""

        token = _ACTIVE_PROVIDERS.set(_ACTIVE_PROVIDERS.get() + (self,))
        try:
            yield self
        finally:
            _ACTIVE_PROVIDERS.reset(token)

    async def mount(self) -> Optional[T]:
        """Enter scope, fetch the first state into history index 0, start polling."""

        if self._mounted:
            return self.state
        self._mounted = True
        _ACTIVE_PROVIDERS.set(_ACTIVE_PROVIDERS.get() + (self,))
        await self.engine.resynchronize(reset=True)

        interval = self.config.fetch_state_interval
        if interval is not None:
            self._poll_task = asyncio.create_task(self._poll(interval))
        telemetry.record_event(
            "provider.mounted",
            data={"provider": self.name, "status": self.status.value, "interval": interval},
            logger_name=self.engine.logger_name,
        )
        return self.state

    async def unmount(self) -> None:
        if not self._mounted:
            return
        if self._poll_task:
            self._poll_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None
        await self.engine.drain()
        _ACTIVE_PROVIDERS.set(tuple(p for p in _ACTIVE_PROVIDERS.get() if p is not self))
        self._mounted = False
        telemetry.record_event(
            "provider.unmounted",
            data={"provider": self.name},
            logger_name=self.engine.logger_name,
        )

    async def __aenter__(self) -> "TransatProvider[T]":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.unmount()
        return False

    async def force_resync(self) -> Optional[T]:
        """Refetch and restart history; outstanding transactions become stale."""

        return await self.engine.resynchronize(reset=True)

    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.engine.resynchronize()


class TransatBinding(NamedTuple):
    provider: TransatProvider[Any]
    use_transat: Callable[[], StateHandle[Any]]


def create_transat(config: TransatConfig, *, name: str = "default") -> TransatBinding:
    """Build an owned provider and the accessor bound to it."""

    provider: TransatProvider[Any] = TransatProvider(config, name=name)

    def use_transat() -> StateHandle[Any]:
        if not provider.active:
            raise UsageError(
                f"use_transat must be used within an active TransatProvider ('{name}')"
            )
        return provider.handle()

    return TransatBinding(provider=provider, use_transat=use_transat)


__all__ = ["StateHandle", "TransatBinding", "TransatProvider", "create_transat"]
