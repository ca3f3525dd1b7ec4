"""複数ストラテジの選択結果を重み付きで合成するストラテジ。"""
from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Any, TYPE_CHECKING

from .. import AggregationResult, TieBreaker
from ...errors import AggregationError, ErrorReason
from ...models import Candidate
from .best_of_n import BestOfNAggregator
from .majority_vote import MajorityVoteAggregator

if TYPE_CHECKING:
    from .. import Aggregator

__all__ = ["WeightedAggregator"]

LOGGER = logging.getLogger(__name__)


class WeightedAggregator:
    """各ストラテジが選んだ候補にそのストラテジの正規化重みを加算し、最大の候補を選ぶ。"""

    name = "weighted"

    def __init__(self, strategies: Sequence[tuple[Aggregator, float]] | None = None) -> None:
        if strategies is None:
            strategies = ((MajorityVoteAggregator(), 0.5), (BestOfNAggregator(), 0.5))
        self._strategies = list(strategies)
        if not self._strategies:
            raise ValueError("weighted: strategies must be non-empty")

    def _normalized(self) -> list[tuple[Aggregator, float]]:
        total = sum(float(weight) for _, weight in self._strategies)
        if total == 0:
            share = 1.0 / len(self._strategies)
            return [(strategy, share) for strategy, _ in self._strategies]
        return [(strategy, float(weight) / total) for strategy, weight in self._strategies]

    def aggregate(
        self, candidates: Sequence[Candidate], *, tiebreaker: TieBreaker | None = None
    ) -> AggregationResult:
        if not candidates:
            raise AggregationError("weighted: candidates must be non-empty", reason=ErrorReason.NO_CANDIDATES)
        if len(candidates) == 1:
            return AggregationResult(
                chosen=candidates[0],
                candidates=list(candidates),
                strategy=self.name,
                reason="single candidate",
                metadata={"confidence": 1.0, "strategy_weights": {}},
            )

        normalized = self._normalized()
        selections: list[dict[str, Any]] = []
        for strategy, weight in normalized:
            try:
                chosen = strategy.aggregate(candidates).chosen
            except AggregationError as exc:
                LOGGER.debug("weighted: strategy %s abstained: %s", strategy.name, exc)
                chosen = None
            selections.append({"strategy": strategy.name, "weight": weight, "chosen": chosen})

        scores: list[float] = []
        for candidate in candidates:
            score = sum(
                entry["weight"]
                for entry in selections
                if entry["chosen"] is not None and entry["chosen"].id == candidate.id
            )
            scores.append(score)

        best_score = max(scores)
        winner = candidates[scores.index(best_score)]
        return AggregationResult(
            chosen=winner,
            candidates=list(candidates),
            strategy=self.name,
            reason=f"weighted_score={best_score:.3f}",
            tie_breaker_used=None,
            metadata={
                "confidence": best_score,
                "weighted_scores": {c.id: s for c, s in zip(candidates, scores)},
                "strategy_weights": {entry["strategy"]: entry["weight"] for entry in selections},
                "strategy_results": {
                    entry["strategy"]: None if entry["chosen"] is None else entry["chosen"].id
                    for entry in selections
                },
                "total_strategies": len(selections),
            },
        )
