from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import itertools
from threading import Event, Lock
from typing import Any

from accuracy.core.models import Candidate, VerificationResult


class RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._lock = Lock()

    def emit(self, event_type: str, record: Mapping[str, Any]) -> None:
        with self._lock:
            self.events.append((event_type, dict(record)))

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [record for kind, record in self.events if kind == event_type]


class ScriptedGenerator:
    """Return contents from ``answers`` in call order, cycling when exhausted."""

    def __init__(self, answers: Sequence[str | BaseException]) -> None:
        self._answers = itertools.cycle(list(answers))
        self._lock = Lock()
        self.calls = 0

    def __call__(self, query: str, context: Mapping[str, Any]) -> Candidate:
        with self._lock:
            self.calls += 1
            answer = next(self._answers)
        if isinstance(answer, BaseException):
            raise answer
        return Candidate(content=answer, metadata={"query": query})


class BlockingGenerator:
    """Block until released so deadline handling can be observed."""

    def __init__(self) -> None:
        self.release = Event()
        self.calls = 0

    def __call__(self, query: str, context: Mapping[str, Any]) -> Candidate:
        self.calls += 1
        self.release.wait(timeout=5)
        return Candidate(content="late")


class CrashingAggregator:
    name = "crashing"

    def aggregate(self, candidates: Sequence[Candidate], *, tiebreaker: object | None = None) -> Any:
        raise RuntimeError("aggregator exploded")


class FixedVerifier:
    def __init__(
        self,
        score: float | None,
        *,
        confidence: float | None = None,
        reasoning: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        step_scores: Mapping[str, Any] | None = None,
        delay: Event | None = None,
    ) -> None:
        self.score = score
        self.confidence = confidence
        self.reasoning = reasoning
        self.metadata = dict(metadata or {})
        self.step_scores = dict(step_scores) if step_scores is not None else None
        self.delay = delay
        self.calls = 0

    def verify(self, candidate: Candidate, context: Mapping[str, Any]) -> VerificationResult:
        self.calls += 1
        if self.delay is not None:
            self.delay.wait(timeout=5)
        return VerificationResult(
            candidate_id=candidate.id,
            score=self.score,
            confidence=self.confidence,
            reasoning=self.reasoning,
            step_scores=self.step_scores,
            metadata=dict(self.metadata),
        )


class RaisingVerifier:
    def __init__(self, message: str = "verifier broke") -> None:
        self.message = message
        self.calls = 0

    def verify(self, candidate: Candidate, context: Mapping[str, Any]) -> VerificationResult:
        self.calls += 1
        raise RuntimeError(self.message)


class ContentRaisingVerifier:
    """Fail only for candidates whose content matches ``bad``."""

    def __init__(self, bad: Iterable[str]) -> None:
        self._bad = set(bad)

    def verify(self, candidate: Candidate, context: Mapping[str, Any]) -> VerificationResult:
        if candidate.content in self._bad:
            raise RuntimeError(f"cannot verify {candidate.content}")
        return VerificationResult(candidate_id=candidate.id, score=1.0, confidence=1.0)


def candidates(*contents: str) -> list[Candidate]:
    return [Candidate(content=content, id=f"c{index}") for index, content in enumerate(contents)]


__all__ = [
    "BlockingGenerator",
    "ContentRaisingVerifier",
    "CrashingAggregator",
    "FixedVerifier",
    "RaisingVerifier",
    "RecordingLogger",
    "ScriptedGenerator",
    "candidates",
]
