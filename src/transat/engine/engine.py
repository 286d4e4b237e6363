"""Optimistic transaction engine owning the history and the current-state cell."""

from __future__ import annotations

import asyncio
import copy
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Set, Tuple, TypeVar

from transat.errors import UsageError
from transat.runtime import telemetry
from transat.state.history import StateHistory

from .bus import StateBus, StateChange
from .transaction import ConflictPolicy, MergeFunction, Transaction

T = TypeVar("T")

FetchState = Callable[[], Awaitable[Any]]
Reducer = Callable[[Any, Any], Any]


class SyncStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class TransactionEngine(Generic[T]):
    """Applies optimistic mutations and resolves conflicts against the server.

    Every operation runs on the owning event loop's thread; the only
    suspension point is ``fetch_state``. Overlapping resynchronizations are
    ordered by a request generation: a response is applied only if no newer
    request was issued while it was in flight.
    """

    def __init__(
        self,
        fetch_state: FetchState,
        *,
        history_depth: Optional[int] = None,
        reducer: Optional[Reducer] = None,
        error_state: Optional[T] = None,
        bus: Optional[StateBus] = None,
        logger_name: Optional[str] = None,
    ) -> None:
        self.fetch_state = fetch_state
        self.reducer = reducer
        self.error_state = error_state
        self.history: StateHistory[T] = StateHistory(depth=history_depth)
        self.bus = bus or StateBus()
        self.status = SyncStatus.UNINITIALIZED
        self.last_error: Optional[BaseException] = None
        self._state: Optional[T] = None
        # (history generation, index) of the snapshot on display
        self._current: Optional[Tuple[int, int]] = None
        self._request_generation = 0
        self._tasks: Set[asyncio.Task[Any]] = set()
        self.logger_name = logger_name or "transat.engine"

    @property
    def state(self) -> Optional[T]:
        return self._state

    @property
    def initialized(self) -> bool:
        return self.history.latest_index() is not None

    @property
    def current_index(self) -> Optional[int]:
        """History index of the displayed state; differs from the latest after a cancel."""

        if self._current is None or self._current[0] != self.history.generation:
            return None
        return self._current[1]

    @property
    def request_generation(self) -> int:
        return self._request_generation

    # -- mutations ---------------------------------------------------------

    def set_state(self, new_state: T) -> Transaction[T]:
        """Install ``new_state`` optimistically and return its transaction."""

        pre_index = self.current_index
        if pre_index is None:
            raise UsageError("set_state called before the first state was installed")
        with telemetry.span(
            "engine::set_state",
            logger_name=self.logger_name,
            component="engine",
            metadata={"pre_index": pre_index},
        ) as handle:
            transaction = Transaction(self, pre_index, new_state)
            self._state = new_state
            index = self.history.append(new_state)
            self._set_current(index)
            handle.add_metadata("index", index)
        self._announce("set_state", index)
        self.bus.emit("transaction.created", transaction)
        return transaction

    def dispatch(self, action: Any) -> Transaction[T]:
        if self.reducer is None:
            raise UsageError("dispatch requires a reducer in the configuration")
        if self.current_index is None:
            raise UsageError("dispatch called before the first state was installed")
        return self.set_state(self.reducer(self._state, action))

    def restore(self, index: int, *, reason: str = "restore") -> T:
        """Show a shallow copy of ``history[index]`` without appending."""

        state = copy.copy(self.history.get(index))
        self._state = state
        self._set_current(index)
        self._announce(reason, index)
        return state

    def install(self, state: T, *, reset: bool = False, reason: str = "install") -> int:
        """Append ``state`` (or restart history with it) and make it current."""

        if reset or not self.initialized:
            self.history.reset(state)
            index = 0
        else:
            index = self.history.append(state)
        self._state = state
        self._set_current(index)
        self._announce(reason, index)
        return index

    # -- conflict resolution -----------------------------------------------

    def resolve_conflict(
        self,
        transaction: Transaction[T],
        policy: ConflictPolicy | MergeFunction,
        *,
        error: str = "",
    ) -> Optional[asyncio.Task[Any]]:
        label = policy.value if isinstance(policy, ConflictPolicy) else "MERGE"
        telemetry.record_event(
            "transaction.conflict",
            level="warning",
            data={"policy": label, "pre_index": transaction.pre_index, "error": error},
            logger_name=self.logger_name,
        )
        self.bus.emit(
            "transaction.conflict",
            {"transaction": transaction, "policy": label, "error": error},
        )
        if policy is ConflictPolicy.CANCEL:
            return self.schedule_resync()

        pre_state = self.history.get(transaction.pre_index)
        if policy is ConflictPolicy.REBASE:
            self.install(copy.copy(pre_state), reason="rebase")
        else:
            self.install(policy(pre_state, transaction.attempted), reason="merge")
        return None

    # -- resynchronization -------------------------------------------------

    async def resynchronize(self, *, reset: bool = False) -> Optional[T]:
        """Fetch authoritative state and install it.

        Returns the installed state, or ``None`` when the fetch failed or a
        newer request superseded this one. A failed ``reset=True`` request
        still restarts history (seeded with ``error_state`` or the displayed
        state), so outstanding transactions go stale either way.
        """

        self._request_generation += 1
        generation = self._request_generation
        if not self.initialized:
            self.status = SyncStatus.LOADING
        self.bus.emit("state.resync", {"generation": generation, "reset": reset})

        try:
            fetched = await self.fetch_state()
        except Exception as exc:
            if generation == self._request_generation:
                self._fail(exc, reset=reset)
            else:
                self._discard(generation, "failure")
            return None

        if generation != self._request_generation:
            self._discard(generation, "response")
            return None

        with telemetry.span(
            "engine::resync",
            logger_name=self.logger_name,
            component="engine",
            metadata={"generation": generation, "reset": reset},
        ):
            self.status = SyncStatus.READY
            self.last_error = None
            self.install(fetched, reset=reset, reason="resync")
        return fetched

    def schedule_resync(self, *, reset: bool = False) -> Optional[asyncio.Task[Any]]:
        """Start a resync on the running loop, or run it to completion without one."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.resynchronize(reset=reset))
            return None
        task = loop.create_task(self.resynchronize(reset=reset))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled resync to settle."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _discard(self, generation: int, what: str) -> None:
        telemetry.record_event(
            "resync.discarded",
            level="debug",
            data={"generation": generation, "latest": self._request_generation, "what": what},
            logger_name=self.logger_name,
        )

    def _fail(self, exc: BaseException, *, reset: bool) -> None:
        self.status = SyncStatus.ERROR
        self.last_error = exc
        telemetry.record_event(
            "state.error",
            level="error",
            data={"error": repr(exc), "reset": reset},
            logger_name=self.logger_name,
        )
        if self.error_state is not None:
            self.install(self.error_state, reset=reset, reason="error")
        elif reset and self._state is not None:
            self.install(self._state, reset=True, reason="error")
        self.bus.emit("state.error", exc)

    def _set_current(self, index: int) -> None:
        # the displayed snapshot stays pinned so the depth bound cannot evict it
        previous = self._current
        self._current = (self.history.generation, index)
        self.history.pin(index)
        if previous is not None:
            self.history.unpin(*previous)

    def _announce(self, reason: str, index: Optional[int]) -> None:
        self.bus.emit(
            "state.changed",
            StateChange(
                state=self._state,
                reason=reason,
                index=index,
                generation=self.history.generation,
            ),
        )


__all__ = ["FetchState", "Reducer", "SyncStatus", "TransactionEngine"]
