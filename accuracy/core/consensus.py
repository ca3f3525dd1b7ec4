"""Majority-vote agreement checks used for early stopping."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from numbers import Real
from typing import Any

from .aggregation import Aggregator, MajorityVoteAggregator
from .errors import AggregationError, ConsensusConfigError, ErrorReason, NoCandidatesError
from .models import Candidate

__all__ = ["ConsensusCheck", "ConsensusChecker", "check_consensus"]


@dataclass(frozen=True, slots=True)
class ConsensusCheck:
    reached: bool
    agreement: float
    metadata: Mapping[str, Any] = field(default_factory=dict)


def _agreement_from(metadata: Mapping[str, Any]) -> float:
    distribution = metadata.get("vote_distribution")
    if isinstance(distribution, Mapping) and distribution:
        total = sum(distribution.values())
        if total > 0:
            return max(distribution.values()) / total
    confidence = metadata.get("confidence")
    if isinstance(confidence, Real) and not isinstance(confidence, bool):
        return float(confidence)
    raise AggregationError("aggregator reported neither vote_distribution nor confidence")


def check_consensus(
    candidates: Sequence[Candidate], aggregator: Aggregator | None = None
) -> tuple[float, Mapping[str, Any]]:
    """Return ``(agreement, aggregation metadata)`` for ``candidates``."""

    if not candidates:
        raise NoCandidatesError("cannot measure agreement without candidates")
    result = (aggregator or MajorityVoteAggregator()).aggregate(candidates)
    return _agreement_from(result.metadata), result.metadata


class ConsensusChecker:
    """Decide whether a candidate set agrees strongly enough to stop sampling."""

    def __init__(self, aggregator: Aggregator | None = None) -> None:
        self._aggregator = aggregator or MajorityVoteAggregator()

    @property
    def aggregator(self) -> Aggregator:
        return self._aggregator

    def check(self, candidates: Sequence[Candidate], threshold: float | None) -> ConsensusCheck:
        if not candidates:
            raise NoCandidatesError("cannot check consensus without candidates")
        if threshold is None:
            raise ConsensusConfigError("consensus threshold is required", reason=ErrorReason.NO_THRESHOLD)
        if not isinstance(threshold, Real) or isinstance(threshold, bool) or not 0.0 <= float(threshold) <= 1.0:
            raise ConsensusConfigError(
                f"consensus threshold must be within [0, 1]: {threshold!r}", reason=ErrorReason.INVALID_THRESHOLD
            )
        agreement, metadata = check_consensus(candidates, self._aggregator)
        return ConsensusCheck(reached=agreement >= float(threshold), agreement=agreement, metadata=metadata)
