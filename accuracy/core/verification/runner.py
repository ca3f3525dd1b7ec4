"""Run an ordered set of verifiers against candidates and merge their verdicts."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import closing
from dataclasses import dataclass
from functools import partial
import logging
from numbers import Real
import time
from typing import Any

from ..errors import AccuracyTimeoutError, ErrorReason, VerificationConfigError, VerifierFailedError
from ..models import Candidate, VerificationResult, VerifierConfig
from ..observability import emit_safely, EventLogger
from ..parallel_exec import iter_outcomes_sync, run_parallel_all_sync
from .builtin.registry import resolve_verifier
from .scoring import AGGREGATION_STRATEGIES, aggregate_scores, is_numeric_score

__all__ = ["ERROR_STRATEGIES", "VerificationRunner"]

LOGGER = logging.getLogger(__name__)

ERROR_STRATEGIES = frozenset({"continue", "halt"})
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_CONFIDENCE = 0.5


@dataclass(frozen=True, slots=True)
class _ResolvedVerifier:
    verifier_id: str
    verifier: Any
    weight: float


def _coerce_config(entry: Any) -> VerifierConfig:
    if isinstance(entry, VerifierConfig):
        return entry
    if isinstance(entry, Mapping) and "verifier" in entry:
        return VerifierConfig(
            verifier=entry["verifier"],
            config=entry.get("config") or {},
            weight=entry.get("weight", 1.0),
            name=entry.get("name"),
        )
    raise VerificationConfigError(f"invalid verifier entry: {entry!r}", reason=ErrorReason.INVALID_VERIFIERS_CONFIG)


class VerificationRunner:
    """Execute verifiers sequentially or in parallel and combine their results.

    Failures follow ``on_error``: ``continue`` drops the failing verifier,
    ``halt`` raises :class:`VerifierFailedError`. Each result is paired with its
    own verifier's weight so dropped verifiers never shift weights.
    """

    def __init__(
        self,
        verifiers: Sequence[VerifierConfig | Mapping[str, Any]],
        *,
        parallel: bool = False,
        aggregation: str = "weighted_avg",
        on_error: str = "continue",
        timeout: float | None = DEFAULT_TIMEOUT_S,
        max_concurrency: int | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        if isinstance(verifiers, str | bytes) or not isinstance(verifiers, Sequence):
            raise VerificationConfigError("verifiers must be a list", reason=ErrorReason.INVALID_VERIFIERS_CONFIG)
        if aggregation not in AGGREGATION_STRATEGIES:
            raise VerificationConfigError(
                f"aggregation must be one of {sorted(AGGREGATION_STRATEGIES)}: {aggregation!r}",
                reason=ErrorReason.INVALID_AGGREGATION_STRATEGY,
            )
        if on_error not in ERROR_STRATEGIES:
            raise VerificationConfigError(
                f"on_error must be one of {sorted(ERROR_STRATEGIES)}: {on_error!r}",
                reason=ErrorReason.INVALID_ERROR_STRATEGY,
            )
        self._validate_timeout(timeout)
        self._entries = [self._resolve(_coerce_config(entry)) for entry in verifiers]
        self.parallel = parallel
        self.aggregation = aggregation
        self.on_error = on_error
        self.timeout = None if timeout is None else float(timeout)
        self.max_concurrency = max_concurrency
        self.event_logger = event_logger

    @staticmethod
    def _validate_timeout(timeout: object) -> None:
        if timeout is None:
            return
        if not isinstance(timeout, Real) or isinstance(timeout, bool) or float(timeout) <= 0:
            raise VerificationConfigError(
                f"timeout must be a positive number of seconds: {timeout!r}", reason=ErrorReason.INVALID_TIMEOUT
            )

    @staticmethod
    def _resolve(config: VerifierConfig) -> _ResolvedVerifier:
        weight = config.weight
        if not isinstance(weight, Real) or isinstance(weight, bool) or weight < 0:
            raise VerificationConfigError(
                f"verifier weight must be a non-negative number: {weight!r}",
                reason=ErrorReason.INVALID_VERIFIERS_CONFIG,
            )
        verifier = resolve_verifier(config.verifier, config.config)
        return _ResolvedVerifier(verifier_id=config.verifier_id, verifier=verifier, weight=float(weight))

    @property
    def verifier_ids(self) -> list[str]:
        return [entry.verifier_id for entry in self._entries]

    def verify_candidate(
        self,
        candidate: Candidate,
        context: Mapping[str, Any] | None = None,
        *,
        parallel: bool | None = None,
        timeout: float | None = None,
    ) -> VerificationResult:
        ctx: Mapping[str, Any] = dict(context or {})
        use_parallel = self.parallel if parallel is None else parallel
        budget = self.timeout if timeout is None else timeout
        self._validate_timeout(budget)
        started = time.monotonic()
        emit_safely(
            self.event_logger,
            "verification_start",
            {"candidate_id": candidate.id, "verifier_count": len(self._entries), "parallel": use_parallel},
        )
        try:
            if use_parallel:
                pairs = self._run_parallel(candidate, ctx, budget)
            else:
                pairs = self._run_sequential(candidate, ctx, budget, started)
        except Exception as exc:
            emit_safely(
                self.event_logger,
                "verification_error",
                {"candidate_id": candidate.id, "error": type(exc).__name__, "message": str(exc)},
            )
            raise
        result = self._combine(candidate, pairs)
        emit_safely(
            self.event_logger,
            "verification_stop",
            {
                "candidate_id": candidate.id,
                "count": len(pairs),
                "duration_ms": int((time.monotonic() - started) * 1000),
                "score": result.score,
            },
        )
        return result

    def verify_all_candidates(
        self,
        candidates: Sequence[Candidate],
        context: Mapping[str, Any] | None = None,
        *,
        parallel: bool | None = None,
        timeout: float | None = None,
    ) -> list[VerificationResult]:
        """Verify every candidate; a failing candidate yields an error result instead of raising."""

        if not candidates:
            return []
        workers = [
            partial(self._verify_isolated, candidate, context, parallel, timeout) for candidate in candidates
        ]
        return run_parallel_all_sync(workers, max_concurrency=self.max_concurrency)

    def _verify_isolated(
        self,
        candidate: Candidate,
        context: Mapping[str, Any] | None,
        parallel: bool | None,
        timeout: float | None,
    ) -> VerificationResult:
        try:
            return self.verify_candidate(candidate, context, parallel=parallel, timeout=timeout)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("verification of candidate %s failed: %s", candidate.id, exc)
            return self.error_result(candidate, exc)

    @staticmethod
    def error_result(candidate: Candidate, error: BaseException | str) -> VerificationResult:
        return VerificationResult(
            candidate_id=candidate.id,
            score=0.0,
            confidence=0.0,
            reasoning=f"Verification failed: {error}",
            metadata={"error": "verification_failed", "detail": str(error)},
        )

    def _call(self, entry: _ResolvedVerifier, candidate: Candidate, context: Mapping[str, Any]) -> VerificationResult:
        result = entry.verifier.verify(candidate, context)
        if not isinstance(result, VerificationResult):
            raise TypeError(f"verifier {entry.verifier_id} returned {type(result).__name__}")
        return result

    def _on_failure(self, entry: _ResolvedVerifier, candidate: Candidate, error: BaseException) -> None:
        if self.on_error == "halt":
            if isinstance(error, AccuracyTimeoutError):
                raise error
            raise VerifierFailedError(entry.verifier_id, error) from error
        LOGGER.warning("verifier %s failed for candidate %s: %s", entry.verifier_id, candidate.id, error)
        emit_safely(
            self.event_logger,
            "verification_error",
            {"candidate_id": candidate.id, "verifier": entry.verifier_id, "message": str(error)},
        )

    def _run_sequential(
        self,
        candidate: Candidate,
        context: Mapping[str, Any],
        timeout: float | None,
        started: float,
    ) -> list[tuple[VerificationResult, float]]:
        pairs: list[tuple[VerificationResult, float]] = []
        for entry in self._entries:
            if timeout is not None and timeout - (time.monotonic() - started) <= 0:
                raise AccuracyTimeoutError(
                    f"verification of {candidate.id} ran out of time before {entry.verifier_id}"
                )
            try:
                result = self._call(entry, candidate, context)
            except Exception as exc:  # noqa: BLE001
                self._on_failure(entry, candidate, exc)
                continue
            pairs.append((result, entry.weight))
        return pairs

    def _run_parallel(
        self,
        candidate: Candidate,
        context: Mapping[str, Any],
        timeout: float | None,
    ) -> list[tuple[VerificationResult, float]]:
        if not self._entries:
            return []
        workers = [partial(self._call, entry, candidate, context) for entry in self._entries]
        pairs: list[tuple[VerificationResult, float]] = []
        outcomes = iter_outcomes_sync(workers, max_concurrency=self.max_concurrency, timeout=timeout)
        with closing(outcomes):
            for outcome in outcomes:
                entry = self._entries[outcome.index]
                if outcome.error is not None:
                    self._on_failure(entry, candidate, outcome.error)
                    continue
                pairs.append((outcome.value, entry.weight))  # type: ignore[arg-type]
        return pairs

    def _combine(
        self, candidate: Candidate, pairs: Sequence[tuple[VerificationResult, float]]
    ) -> VerificationResult:
        if not pairs:
            return VerificationResult(
                candidate_id=candidate.id,
                score=0.0,
                confidence=0.0,
                reasoning="No verification results",
                metadata={"verifier_count": 0},
            )
        results = [result for result, _ in pairs]
        weights = [weight for _, weight in pairs]
        score = aggregate_scores(results, weights, self.aggregation)
        confidences = [
            float(result.confidence) if is_numeric_score(result.confidence) else DEFAULT_CONFIDENCE
            for result in results
        ]
        reasons = [result.reasoning for result in results if result.reasoning]
        reasoning = "Combined verification: " + "; ".join(reasons) if reasons else "Verification completed"
        metadata: dict[str, Any] = {}
        step_scores: dict[str, Any] = {}
        for result in results:
            metadata.update(result.metadata or {})
            step_scores.update(result.step_scores or {})
        metadata["verifier_count"] = len(results)
        return VerificationResult(
            candidate_id=candidate.id,
            score=score,
            confidence=sum(confidences) / len(confidences),
            reasoning=reasoning,
            step_scores=step_scores,
            metadata=metadata,
        )
