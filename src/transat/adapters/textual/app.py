"""Executable Textual app demonstrating optimistic updates against a JSON file.

The file plays the server: its content is the authoritative state, and the
token of its content is what the "server" would answer after a mutation.
Edit the file while the app runs to simulate concurrent server changes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual.app import App, ComposeResult
    from textual.containers import Vertical
    from textual.widgets import Footer, Header, Log, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use transat.adapters.textual.app"
    ) from exc

from transat.binding import TransatProvider
from transat.engine import TransatConfig
from transat.state import compute_token

from .controller import TextualStateHooks, TextualTransatAdapter


def file_fetcher(path: Path):
    async def fetch_state() -> Dict[str, Any]:
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return json.loads(raw)

    return fetch_state


def bump_counter(state: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **state,
        "counter": int(state.get("counter", 0)) + 1,
        "version": int(state["version"]) + 1,
    }


def keep_higher_counter(pre_state: Dict[str, Any], attempted: Dict[str, Any]) -> Dict[str, Any]:
    winner = max(pre_state, attempted, key=lambda s: int(s.get("counter", 0)))
    return {**winner, "version": max(pre_state["version"], attempted["version"]) + 1}


class TransatApp(App[None]):
    """Minimal Textual UI over one provider."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#state-view {
		height: 1fr;
		border: round $accent;
		padding: 1 1;
		overflow: auto;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#event-log {
		height: 10;
		border: round $surface-lighten-1;
	}
	"""

    BINDINGS = [
        ("plus", "bump", "Bump counter"),
        ("c", "cancel", "Cancel"),
        ("v", "validate", "Validate"),
        ("m", "merge", "Validate (merge)"),
        ("r", "resync", "Force resync"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, state_file: Path, *, interval: Optional[float] = None) -> None:
        super().__init__()
        self.state_file = state_file
        self.provider: TransatProvider[Dict[str, Any]] = TransatProvider(
            TransatConfig(
                fetch_state=file_fetcher(state_file),
                loading_state={"version": 0, "loading": True},
                error_state={"version": -1, "error": True},
                fetch_state_interval=interval,
                history_depth=64,
            ),
            name="demo",
        )
        self.adapter: TextualTransatAdapter | None = None
        self._state_widget: Static | None = None
        self._status_widget: Static | None = None
        self._log_widget: Log | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="state-area"):
            self._state_widget = Static("", id="state-view")
            yield self._state_widget
        self._status_widget = Static("", id="status-line")
        self._log_widget = Log(id="event-log")
        yield self._status_widget
        yield self._log_widget
        yield Footer()

    async def on_mount(self) -> None:
        hooks = TextualStateHooks(
            update_state=self._update_state,
            update_status=self._update_status,
            log=self._log_line,
        )
        self.adapter = TextualTransatAdapter(self.provider, hooks)
        await self.provider.mount()

    async def on_unmount(self) -> None:
        if self.adapter:
            self.adapter.close()
        await self.provider.unmount()

    def action_bump(self) -> None:
        if self.adapter:
            self.adapter.apply(bump_counter)

    def action_cancel(self) -> None:
        if self.adapter:
            self.adapter.cancel_last()

    async def action_validate(self) -> None:
        await self._validate_against_file()

    async def action_merge(self) -> None:
        await self._validate_against_file(on_conflict=keep_higher_counter)

    async def action_resync(self) -> None:
        await self.provider.force_resync()

    async def _validate_against_file(self, **kwargs: Any) -> None:
        if not self.adapter:
            return
        server_state = await file_fetcher(self.state_file)()
        self.adapter.validate_last(compute_token(server_state), **kwargs)

    def _update_state(self, state: Any) -> None:
        if self._state_widget:
            self._state_widget.update(json.dumps(state, indent=2, sort_keys=True))

    def _update_status(self, status: str) -> None:
        if self._status_widget:
            self._status_widget.update(status)

    def _log_line(self, line: str) -> None:
        if self._log_widget:
            self._log_widget.write_line(line)


def _env_float(key: str) -> Optional[float]:
    value = os.environ.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the transat Textual demo.")
    parser.add_argument(
        "state_file",
        type=Path,
        help="JSON file holding the authoritative state (must contain 'version')",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=_env_float("TRANSAT_FETCH_INTERVAL"),
        help="Seconds between periodic refreshes (default: disabled)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    app = TransatApp(args.state_file, interval=args.interval)
    app.run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
