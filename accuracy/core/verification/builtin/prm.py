"""推論ステップ単位のスコアを集約するプロセス報酬型の検証器。"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ... import prm_aggregation
from ...errors import ErrorReason, VerificationConfigError
from ...models import Candidate, VerificationResult
from ...thresholds import DEFAULT_PRM_THRESHOLD

__all__ = ["PrmVerifier", "StepScorer", "split_steps"]

StepScorer = Callable[[str, Mapping[str, Any]], float]


def split_steps(candidate: Candidate) -> list[str]:
    """``metadata["steps"]`` があればそれを、無ければ本文の空でない行をステップとする。"""

    steps = candidate.metadata.get("steps")
    if isinstance(steps, Sequence) and not isinstance(steps, str):
        return [str(step) for step in steps]
    content = candidate.content or ""
    return [line.strip() for line in content.split("\n") if line.strip()]


class PrmVerifier:
    name = "prm"

    def __init__(
        self,
        *,
        step_scorer: StepScorer | None = None,
        strategy: str = "product",
        weights: Sequence[float] | None = None,
        threshold: float = DEFAULT_PRM_THRESHOLD,
    ) -> None:
        if step_scorer is None or not callable(step_scorer):
            raise VerificationConfigError(
                "prm verifier requires a callable step_scorer", reason=ErrorReason.INVALID_VERIFIERS_CONFIG
            )
        if strategy not in prm_aggregation.STRATEGIES:
            raise VerificationConfigError(
                f"unknown step aggregation strategy: {strategy!r}", reason=ErrorReason.INVALID_VERIFIERS_CONFIG
            )
        self._step_scorer = step_scorer
        self.strategy = strategy
        self.weights = list(weights) if weights is not None else None
        self.threshold = threshold

    def verify(self, candidate: Candidate, context: Mapping[str, Any] | None = None) -> VerificationResult:
        ctx = context or {}
        steps = split_steps(candidate)
        scores = [float(self._step_scorer(step, ctx)) for step in steps]
        score = None
        if scores:
            weights = self.weights
            if self.strategy == "weighted_average" and weights is not None and len(weights) == len(scores):
                weights = prm_aggregation.normalize_weights(weights)
            score = prm_aggregation.aggregate(scores, self.strategy, weights=weights)
        if score is None:
            return VerificationResult(
                candidate_id=candidate.id,
                score=None,
                confidence=0.0,
                reasoning="No reasoning steps to score",
                step_scores={},
                metadata={"strategy": self.strategy, "step_count": 0},
            )
        passed = score >= self.threshold
        return VerificationResult(
            candidate_id=candidate.id,
            score=float(score),
            confidence=None,
            reasoning=f"{len(scores)} steps aggregated by {self.strategy}: {score:.3f}",
            step_scores={f"step_{index}": value for index, value in enumerate(scores, start=1)},
            metadata={"strategy": self.strategy, "step_count": len(scores), "passed": passed},
        )
