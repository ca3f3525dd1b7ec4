"""Structured event sinks for allocation, sampling and verification telemetry."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
import logging
from pathlib import Path
import sys
from threading import Lock
from typing import Any, Protocol, TextIO

PathLike = str | Path

LOGGER = logging.getLogger(__name__)

__all__ = [
    "CompositeLogger",
    "EventLogger",
    "JsonlLogger",
    "NullLogger",
    "StdLogger",
    "emit_safely",
]


class EventLogger(Protocol):
    """Protocol for structured event loggers."""

    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        """Persist ``record`` for ``event_type``."""


def _dump(event_type: str, record: Mapping[str, Any]) -> str:
    payload = dict(record)
    payload.setdefault("event", event_type)
    return json.dumps(payload, ensure_ascii=False, default=str)


class NullLogger:
    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        return None


class JsonlLogger:
    """Append structured events to a JSONL file with basic locking."""

    def __init__(self, path: PathLike) -> None:
        self._path = Path(path)
        self._lock = Lock()

    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        line = _dump(event_type, record)
        parent = self._path.parent
        if parent != Path(""):
            parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


class StdLogger:
    """Emit structured events to a text stream as JSON."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stderr
        self._lock = Lock()

    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        line = _dump(event_type, record)
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()


class CompositeLogger:
    """Fan out events to multiple loggers while isolating failures."""

    def __init__(self, loggers: Iterable[EventLogger] | None = None) -> None:
        self._loggers: list[EventLogger] = list(loggers or ())
        self._lock = Lock()

    def add(self, logger: EventLogger) -> None:
        with self._lock:
            self._loggers.append(logger)

    def clear(self) -> None:
        with self._lock:
            self._loggers.clear()

    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        with self._lock:
            loggers = tuple(self._loggers)
        for logger in loggers:
            emit_safely(logger, event_type, record)


def emit_safely(logger: EventLogger | None, event_type: str, record: Mapping[str, Any]) -> None:
    """Emit ``record`` if a logger is configured; sink failures are logged, never raised."""

    if logger is None:
        return
    try:
        logger.emit(event_type, record)
    except Exception:  # noqa: BLE001
        LOGGER.warning("event logger %s failed for %s", type(logger).__name__, event_type, exc_info=True)
