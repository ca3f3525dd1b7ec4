from __future__ import annotations

import json
import logging
from typing import Optional

from accuracy.core.errors import AccuracyError, BudgetExhaustedError, ConfigError, UnknownLevelError

LOGGER = logging.getLogger("accuracy.cli")

EXIT_OK = 0
EXIT_INPUT_ERROR = 2
EXIT_BUDGET_ERROR = 3
EXIT_RUNTIME_ERROR = 4


class JsonLogFormatter(logging.Formatter):
    """JSON 形式でログを吐き出すフォーマッタ。"""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _configure_logging(as_json: bool, *, verbose: bool = False) -> None:
    handler = logging.StreamHandler()
    if as_json:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _exit_code_for(exc: AccuracyError) -> int:
    if isinstance(exc, BudgetExhaustedError):
        return EXIT_BUDGET_ERROR
    if isinstance(exc, ConfigError | UnknownLevelError):
        return EXIT_INPUT_ERROR
    return EXIT_RUNTIME_ERROR


def _coerce_exit_code(value: Optional[int]) -> int:
    if value is None:
        return EXIT_INPUT_ERROR
    try:
        return int(value)
    except (TypeError, ValueError):
        return EXIT_INPUT_ERROR


__all__ = [
    "EXIT_BUDGET_ERROR",
    "EXIT_INPUT_ERROR",
    "EXIT_OK",
    "EXIT_RUNTIME_ERROR",
    "JsonLogFormatter",
    "LOGGER",
    "_coerce_exit_code",
    "_configure_logging",
    "_exit_code_for",
]
