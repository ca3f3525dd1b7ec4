"""Score combination rules for verifier ensembles."""
from __future__ import annotations

from collections.abc import Sequence
import math
from numbers import Real

from ..errors import ErrorReason, VerificationConfigError
from ..models import VerificationResult

__all__ = ["AGGREGATION_STRATEGIES", "aggregate_scores", "is_numeric_score"]

AGGREGATION_STRATEGIES = frozenset({"weighted_avg", "max", "min", "sum", "product"})


def is_numeric_score(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def aggregate_scores(
    results: Sequence[VerificationResult],
    weights: Sequence[float],
    strategy: str,
) -> float:
    """Combine per-verifier scores into one value.

    ``weights`` pairs positionally with ``results`` and is only read by
    ``weighted_avg``. Non-numeric scores count as ``0`` for the weighted
    average and are skipped by every other rule; an empty input yields ``0.0``.
    """

    if strategy not in AGGREGATION_STRATEGIES:
        raise VerificationConfigError(
            f"unknown aggregation strategy: {strategy!r}", reason=ErrorReason.INVALID_AGGREGATION_STRATEGY
        )
    if strategy == "weighted_avg":
        if len(weights) != len(results):
            raise ValueError(f"expected {len(results)} weights, got {len(weights)}")
        total_weight = sum(float(weight) for weight in weights)
        if total_weight == 0:
            return 0.0
        weighted = sum(
            (float(result.score) if is_numeric_score(result.score) else 0.0) * float(weight)
            for result, weight in zip(results, weights)
        )
        return weighted / total_weight

    numeric = [float(result.score) for result in results if is_numeric_score(result.score)]
    if not numeric:
        return 0.0
    if strategy == "max":
        return max(numeric)
    if strategy == "min":
        return min(numeric)
    if strategy == "sum":
        return sum(numeric)
    return math.prod(numeric)
