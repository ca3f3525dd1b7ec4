"""推論ステップごとのスコアを 1 つの値にまとめる純粋関数群。

スコアは概ね ``[0, 1]`` を想定する。範囲の異なるスコアは
:func:`normalize_scores` で揃えてから集約すること。
"""
from __future__ import annotations

from collections.abc import Sequence
import math

__all__ = [
    "STRATEGIES",
    "WEIGHT_SUM_TOLERANCE",
    "aggregate",
    "average_score",
    "max_score",
    "min_score",
    "normalize_scores",
    "normalize_weights",
    "product_scores",
    "softmax",
    "sum_scores",
    "weighted_average",
]

WEIGHT_SUM_TOLERANCE = 0.001

STRATEGIES = frozenset({"sum", "product", "min", "max", "average", "weighted_average"})


def sum_scores(scores: Sequence[float]) -> float:
    return sum(scores)


def product_scores(scores: Sequence[float]) -> float:
    """確率的な積。空列は 1 を返す。"""

    return math.prod(scores)


def min_score(scores: Sequence[float]) -> float | None:
    """最も弱いステップのスコア。空列は ``None``。"""

    if not scores:
        return None
    return min(scores)


def max_score(scores: Sequence[float]) -> float | None:
    if not scores:
        return None
    return max(scores)


def average_score(scores: Sequence[float]) -> float | None:
    if not scores:
        return None
    return sum(scores) / len(scores)


def weighted_average(scores: Sequence[float], weights: Sequence[float]) -> float | None:
    """重み付き平均。重みは ``scores`` と同じ長さで、合計 1.0 (許容誤差 0.001) であること。"""

    if not scores:
        return None
    if len(scores) != len(weights):
        raise ValueError(
            f"scores and weights must have the same length: got {len(scores)} and {len(weights)}"
        )
    weight_sum = sum(weights)
    if abs(weight_sum - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ValueError(
            f"weights must sum to 1.0, got {weight_sum}; use normalize_weights() first"
        )
    return sum(score * weight for score, weight in zip(scores, weights))


def normalize_weights(weights: Sequence[float]) -> list[float]:
    """合計が 1.0 になるよう重みを正規化する。合計 0 の場合は ``[0.0]``。"""

    if not weights:
        return []
    total = sum(weights)
    if total == 0:
        return [0.0]
    return [weight / total for weight in weights]


def normalize_scores(scores: Sequence[float], target: tuple[float, float]) -> list[float]:
    """スコアを ``target`` の範囲に線形変換する。全要素が同値なら中点に揃える。"""

    if not scores:
        return []
    low, high = target
    source_min = min(scores)
    source_max = max(scores)
    source_range = source_max - source_min
    if source_range == 0:
        midpoint = (low + high) / 2
        return [midpoint] * len(scores)
    target_range = high - low
    return [(score - source_min) / source_range * target_range + low for score in scores]


def softmax(scores: Sequence[float]) -> list[float]:
    if not scores:
        return []
    peak = max(scores)
    exps = [math.exp(score - peak) for score in scores]
    total = sum(exps)
    return [value / total for value in exps]


def aggregate(
    scores: Sequence[float],
    strategy: str,
    *,
    weights: Sequence[float] | None = None,
) -> float | None:
    """``strategy`` 名で集約関数を選んで適用する。

    ``weighted_average`` で ``weights`` が省略された場合は一様重みを使う。
    """

    kind = (strategy or "").strip().lower()
    if kind == "sum":
        return sum_scores(scores)
    if kind == "product":
        return product_scores(scores)
    if kind == "min":
        return min_score(scores)
    if kind == "max":
        return max_score(scores)
    if kind == "average":
        return average_score(scores)
    if kind == "weighted_average":
        if weights is None:
            weights = normalize_weights([1.0] * len(scores))
        return weighted_average(scores, weights)
    raise ValueError(f"unknown aggregation strategy: {strategy!r}")
