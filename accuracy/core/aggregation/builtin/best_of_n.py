"""最高スコア選択ストラテジ。"""
from __future__ import annotations

from collections.abc import Sequence

from .. import AggregationResult, TieBreaker
from ...errors import AggregationError, ErrorReason
from ...models import Candidate

__all__ = ["BestOfNAggregator"]


def _token_key(candidate: Candidate) -> float:
    # 同点ならトークン消費の少ない候補を優先する
    return float("inf") if candidate.tokens_used is None else float(candidate.tokens_used)


class BestOfNAggregator:
    name = "best_of_n"

    def distribution(self, candidates: Sequence[Candidate]) -> dict[float | None, int]:
        counts: dict[float | None, int] = {}
        for candidate in candidates:
            counts[candidate.score] = counts.get(candidate.score, 0) + 1
        return counts

    def aggregate(
        self, candidates: Sequence[Candidate], *, tiebreaker: TieBreaker | None = None
    ) -> AggregationResult:
        if not candidates:
            raise AggregationError("best_of_n: candidates must be non-empty", reason=ErrorReason.NO_CANDIDATES)

        if len(candidates) == 1:
            single = candidates[0]
            return AggregationResult(
                chosen=single,
                candidates=list(candidates),
                strategy=self.name,
                reason="single candidate",
                metadata={
                    "confidence": 1.0 if single.score is None else float(single.score),
                    "score_distribution": self.distribution(candidates),
                },
            )

        scored = [(index, c) for index, c in enumerate(candidates) if c.score is not None]
        if not scored:
            raise AggregationError("best_of_n: no candidate carries a score", reason=ErrorReason.NO_SCORES)

        top = max(float(c.score) for _, c in scored)  # type: ignore[arg-type]
        tied = [c for _, c in scored if float(c.score) == top]  # type: ignore[arg-type]
        if len(tied) == 1:
            chosen = tied[0]
            tie_used = None
        elif tiebreaker is not None:
            chosen = tiebreaker.break_tie(tied)
            tie_used = tiebreaker.name
        else:
            chosen = min(enumerate(tied), key=lambda pair: (_token_key(pair[1]), pair[0]))[1]
            tie_used = "fewest_tokens"

        return AggregationResult(
            chosen=chosen,
            candidates=list(candidates),
            strategy=self.name,
            reason=f"score={chosen.score}",
            tie_breaker_used=tie_used,
            metadata={
                "confidence": float(chosen.score),  # type: ignore[arg-type]
                "score_distribution": self.distribution([c for _, c in scored]),
                "total_candidates": len(candidates),
                "scored_candidates": len(scored),
            },
        )
