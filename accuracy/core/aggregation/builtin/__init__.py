"""組み込み集約ストラテジモジュール群。"""
from __future__ import annotations

from .best_of_n import BestOfNAggregator
from .majority_vote import MajorityVoteAggregator
from .registry import (
    AGGREGATOR_ALIASES,
    AGGREGATOR_FACTORIES,
    AggregatorFactory,
    resolve_aggregator,
)
from .tie_breakers import FirstTieBreaker, MaxScoreTieBreaker
from .weighted import WeightedAggregator

__all__ = [
    "AGGREGATOR_ALIASES",
    "AGGREGATOR_FACTORIES",
    "AggregatorFactory",
    "BestOfNAggregator",
    "FirstTieBreaker",
    "MajorityVoteAggregator",
    "MaxScoreTieBreaker",
    "WeightedAggregator",
    "resolve_aggregator",
]
