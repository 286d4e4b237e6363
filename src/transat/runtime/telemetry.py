"""Structured logging for transat on top of telelog.

Engine and provider code only use ``get_logger``, ``record_event`` and
``span``. The logger configuration is read once from ``TRANSAT_*``
environment variables (see ``TelemetrySettings``).
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterator, Mapping, Optional, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "TRANSAT_"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class TelemetrySettings:
    """Logger options resolved from the environment."""

    level: str = "INFO"
    console: bool = True
    color: bool = True
    json: bool = False
    log_file: str = ""
    buffer_size: Optional[int] = None
    logger_name: str = "transat"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "TelemetrySettings":
        def flag(name: str) -> bool:
            return environ.get(f"{ENV_PREFIX}{name}", "").lower() in _TRUTHY

        buffered = flag("LOG_BUFFERED")
        return cls(
            level=environ.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
            console=not flag("DISABLE_CONSOLE"),
            color=not flag("NO_COLOR"),
            json=flag("LOG_JSON"),
            log_file=environ.get(f"{ENV_PREFIX}LOG_FILE", ""),
            buffer_size=int(environ.get(f"{ENV_PREFIX}LOG_BUFFER_SIZE", "2048"))
            if buffered
            else None,
            logger_name=environ.get(f"{ENV_PREFIX}LOGGER", "transat"),
        )


SETTINGS = TelemetrySettings.from_env()


def _build_config(settings: TelemetrySettings) -> Any:
    config = tl.Config()
    config.with_min_level(settings.level)
    config.with_console_output(settings.console)
    if settings.console:
        config.with_colored_output(settings.color)
    if settings.json:
        config.with_json_format(True)
    if settings.log_file:
        config.with_file_output(settings.log_file)
    if settings.buffer_size is not None:
        config.with_buffering(True)
        config.with_buffer_size(settings.buffer_size)
    config.with_profiling(True)
    return config


@lru_cache(maxsize=None)
def get_logger(name: Optional[str] = None) -> Any:
    """Return the telelog logger for ``name`` (one instance per name)."""

    return tl.Logger.with_config(name or SETTINGS.logger_name, _build_config(SETTINGS))


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return repr(value) if isinstance(value, (dict, list, tuple, set)) else str(value)


def _emit(log: Any, level: str, message: str, payload: Dict[str, Any]) -> None:
    """Log ``message`` with ``payload`` as pairs when the level supports it."""

    name = level.lower()
    structured = getattr(log, f"{name}_with", None)
    if structured is not None:
        structured(message, [(str(k), _text(v)) for k, v in payload.items()])
        return
    plain = getattr(log, name, None)
    if plain is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    plain(f"{message} {payload}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    _emit(get_logger(logger_name), level, f"event::{name}", {"event": name, **(data or {})})


@dataclass
class SpanHandle:
    """Yielded by ``span``; metadata added here shows up on failure reports."""

    logger: Any
    span_name: str
    component_name: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _text(value)

    def fail(self, reason: str) -> None:
        payload: Dict[str, Any] = {"span": self.span_name, **self.metadata, "reason": reason}
        if self.component_name:
            payload["component"] = self.component_name
        _emit(self.logger, "error", "span::fail", payload)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str | bool] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile a block, optionally tracked as a component.

    ``component=True`` reuses ``name``; a string names the component.
    ``metadata`` is attached as logger context while the block runs.
    """

    log = get_logger(logger_name)
    component_name = name if component is True else (component or None)
    context = {key: _text(value) for key, value in (metadata or {}).items()}

    with ExitStack() as stack:
        for key, value in context.items():
            log.add_context(key, value)
            stack.callback(log.remove_context, key)
        if component_name:
            stack.enter_context(log.track_component(component_name))
        stack.enter_context(log.profile(name))

        handle = SpanHandle(log, name, component_name, dict(context))
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise


__all__ = [
    "SETTINGS",
    "SpanHandle",
    "TelemetrySettings",
    "get_logger",
    "record_event",
    "span",
]
