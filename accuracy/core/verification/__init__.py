"""Verifier ensemble execution."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..models import Candidate, VerificationResult


@runtime_checkable
class Verifier(Protocol):
    def verify(self, candidate: Candidate, context: Mapping[str, Any]) -> VerificationResult: ...


from .builtin import (  # noqa: E402
    DeterministicVerifier,
    PrmVerifier,
    resolve_verifier,
    VERIFIER_FACTORIES,
)
from .runner import VerificationRunner  # noqa: E402
from .scoring import AGGREGATION_STRATEGIES, aggregate_scores  # noqa: E402

__all__ = [
    "AGGREGATION_STRATEGIES",
    "DeterministicVerifier",
    "PrmVerifier",
    "VERIFIER_FACTORIES",
    "VerificationRunner",
    "Verifier",
    "aggregate_scores",
    "resolve_verifier",
]
