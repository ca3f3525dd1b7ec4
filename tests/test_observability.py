from __future__ import annotations

from collections.abc import Mapping
import io
import json
import logging
from pathlib import Path
from typing import Any

import pytest

from accuracy.core.observability import CompositeLogger, emit_safely, JsonlLogger, NullLogger, StdLogger

from tests.helpers.fakes import RecordingLogger


class _BrokenLogger:
    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        raise OSError("disk full")


def test_jsonl_logger_appends_events(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "events.jsonl"
    logger = JsonlLogger(path)

    logger.emit("budget_allocated", {"cost": 3.0})
    logger.emit("self_consistency_stop", {"actual_n": 3, "event": "custom"})

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert lines == [{"cost": 3.0, "event": "budget_allocated"}, {"actual_n": 3, "event": "custom"}]


def test_std_logger_writes_json_lines() -> None:
    stream = io.StringIO()

    StdLogger(stream).emit("verification_stop", {"score": 0.5})

    assert json.loads(stream.getvalue()) == {"score": 0.5, "event": "verification_stop"}


def test_composite_logger_isolates_sink_failures(caplog: pytest.LogCaptureFixture) -> None:
    recorder = RecordingLogger()
    composite = CompositeLogger([_BrokenLogger(), NullLogger()])
    composite.add(recorder)

    with caplog.at_level(logging.WARNING, logger="accuracy.core.observability"):
        composite.emit("verification_start", {"candidate_id": "c"})

    assert recorder.of_type("verification_start") == [{"candidate_id": "c"}]
    assert "_BrokenLogger" in caplog.text
    composite.clear()
    composite.emit("verification_start", {})
    assert len(recorder.events) == 1


def test_emit_safely_without_logger() -> None:
    emit_safely(None, "anything", {"k": 1})
