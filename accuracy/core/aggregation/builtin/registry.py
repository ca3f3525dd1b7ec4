"""組み込み集約ストラテジのレジストリ。"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .. import Aggregator
from .best_of_n import BestOfNAggregator
from .majority_vote import MajorityVoteAggregator
from .weighted import WeightedAggregator

__all__ = [
    "AggregatorFactory",
    "resolve_aggregator",
    "AGGREGATOR_FACTORIES",
    "AGGREGATOR_ALIASES",
]

AggregatorFactory = Callable[..., Aggregator]


def _build_majority(**_kwargs: Any) -> Aggregator:
    return MajorityVoteAggregator()


def _build_best_of_n(**_kwargs: Any) -> Aggregator:
    return BestOfNAggregator()


def _build_weighted(**kwargs: Any) -> Aggregator:
    strategies = kwargs.get("strategies")
    if strategies is None:
        return WeightedAggregator()
    resolved = []
    for kind, weight in strategies:
        strategy = resolve_aggregator(kind) if isinstance(kind, str) else kind
        resolved.append((strategy, float(weight)))
    return WeightedAggregator(resolved)


AGGREGATOR_FACTORIES: dict[str, AggregatorFactory] = {
    "majority_vote": _build_majority,
    "best_of_n": _build_best_of_n,
    "weighted": _build_weighted,
}

AGGREGATOR_ALIASES: dict[str, set[str]] = {
    "majority_vote": {"majority", "majority_vote", "vote", "maj"},
    "best_of_n": {"best_of_n", "best", "max", "max_score"},
    "weighted": {"weighted", "weighted_vote"},
}


def resolve_aggregator(kind: str, **kwargs: Any) -> Aggregator:
    kind_norm = (kind or "").strip().lower()
    for key, aliases in AGGREGATOR_ALIASES.items():
        if kind_norm in aliases:
            return AGGREGATOR_FACTORIES[key](**kwargs)
    raise ValueError(f"unknown aggregator: {kind}")
