"""候補集約ストラテジ。"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..models import Candidate


@dataclass(slots=True)
class AggregationResult:
    chosen: Candidate
    candidates: list[Candidate]
    strategy: str
    reason: str | None = None
    tie_breaker_used: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def confidence(self) -> float | None:
        value = self.metadata.get("confidence")
        return None if value is None else float(value)


@runtime_checkable
class TieBreaker(Protocol):
    name: str

    def break_tie(self, candidates: Sequence[Candidate]) -> Candidate: ...


@runtime_checkable
class Aggregator(Protocol):
    name: str

    def aggregate(
        self, candidates: Sequence[Candidate], *, tiebreaker: TieBreaker | None = None
    ) -> AggregationResult: ...


from .builtin import (  # noqa: E402
    AGGREGATOR_ALIASES,
    AGGREGATOR_FACTORIES,
    BestOfNAggregator,
    FirstTieBreaker,
    MajorityVoteAggregator,
    MaxScoreTieBreaker,
    resolve_aggregator,
    WeightedAggregator,
)

__all__ = [
    "AGGREGATOR_ALIASES",
    "AGGREGATOR_FACTORIES",
    "AggregationResult",
    "Aggregator",
    "BestOfNAggregator",
    "FirstTieBreaker",
    "MajorityVoteAggregator",
    "MaxScoreTieBreaker",
    "TieBreaker",
    "WeightedAggregator",
    "resolve_aggregator",
]
