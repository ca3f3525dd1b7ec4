"""適応的自己一貫性サンプリング。

難易度に応じて生成する候補数を調整し、バッチごとに多数決の合意度を測って
閾値に達した時点で早期停止する。実行全体は 1 つの期限付き処理として扱い、
期限切れの場合は途中結果を破棄して :class:`AccuracyTimeoutError` を送出する。
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
import logging
from numbers import Real
from threading import Event
from typing import Any, Callable, Protocol, runtime_checkable

from .aggregation import Aggregator, resolve_aggregator
from .budgets import ComputeBudget
from .consensus import ConsensusCheck, ConsensusChecker
from .errors import (
    AccuracyTimeoutError,
    AllGeneratorsFailedError,
    ErrorReason,
    NoCandidatesError,
    SelfConsistencyConfigError,
)
from .models import Candidate, DifficultyEstimate, DifficultyLevel, SelfConsistencyResult
from .observability import emit_safely, EventLogger
from .parallel_exec import collect_outcomes_sync, run_with_deadline
from .thresholds import EARLY_STOP_THRESHOLD

__all__ = [
    "AdaptiveSelfConsistency",
    "DifficultyEstimator",
    "Generator",
    "INITIAL_N",
    "MAX_N",
    "MIN_TIMEOUT_S",
    "MAX_TIMEOUT_S",
    "adjust_n",
    "initial_n_for",
    "max_n_for",
]

LOGGER = logging.getLogger(__name__)

INITIAL_N: dict[DifficultyLevel, int] = {
    DifficultyLevel.EASY: 3,
    DifficultyLevel.MEDIUM: 5,
    DifficultyLevel.HARD: 10,
}
MAX_N: dict[DifficultyLevel, int] = {
    DifficultyLevel.EASY: 5,
    DifficultyLevel.MEDIUM: 10,
    DifficultyLevel.HARD: 20,
}

MIN_TIMEOUT_S = 1.0
MAX_TIMEOUT_S = 300.0
DEFAULT_TIMEOUT_S = 30.0


@runtime_checkable
class Generator(Protocol):
    """``(query, context) -> Candidate`` を返す生成器。スレッドセーフであること。"""

    def __call__(self, query: str, context: Mapping[str, Any]) -> Candidate: ...


@runtime_checkable
class DifficultyEstimator(Protocol):
    def estimate(self, query: str, context: Mapping[str, Any]) -> DifficultyEstimate: ...


def max_n_for(level: DifficultyLevel | str, *, min_candidates: int, max_candidates: int) -> int:
    """レベル上限を ``[min_candidates, max_candidates]`` に収めた最大候補数。"""

    parsed = DifficultyLevel.parse(level)
    return max(min(MAX_N[parsed], max_candidates), min_candidates)


def initial_n_for(level: DifficultyLevel | str, *, min_candidates: int, max_candidates: int) -> int:
    """レベル初期値を下限で持ち上げ、最大候補数で抑えた初期候補数。"""

    parsed = DifficultyLevel.parse(level)
    ceiling = max_n_for(parsed, min_candidates=min_candidates, max_candidates=max_candidates)
    return min(max(INITIAL_N[parsed], min_candidates), ceiling)


def adjust_n(level: DifficultyLevel | str, current_n: int, *, max_n: int, batch_size: int) -> int:
    """次のバッチで生成する候補数を返す。上限に達していれば 0。"""

    DifficultyLevel.parse(level)
    remaining = max_n - current_n
    if remaining <= 0:
        return 0
    return min(batch_size, remaining)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _resolve_generator(generator: Any) -> Callable[[str, Mapping[str, Any]], Any]:
    if generator is None:
        raise SelfConsistencyConfigError("a generator is required", reason=ErrorReason.GENERATOR_REQUIRED)
    generate = getattr(generator, "generate", None)
    if callable(generate):
        return generate
    if callable(generator):
        return generator
    raise SelfConsistencyConfigError("generator must be callable", reason=ErrorReason.GENERATOR_REQUIRED)


def _as_candidate(value: Any) -> Candidate:
    if isinstance(value, Candidate):
        return value
    if isinstance(value, str):
        return Candidate(content=value)
    raise TypeError(f"generator returned {type(value).__name__}, expected Candidate")


@dataclass(slots=True)
class _RunState:
    level: DifficultyLevel
    initial_n: int
    max_n: int
    candidates: list[Candidate]
    last_check: ConsensusCheck | None = None


class AdaptiveSelfConsistency:
    """難易度適応型の早期停止付きサンプラー。"""

    def __init__(
        self,
        *,
        min_candidates: int = 3,
        max_candidates: int = 20,
        batch_size: int = 3,
        early_stop_threshold: float = EARLY_STOP_THRESHOLD,
        aggregator: Aggregator | str = "majority_vote",
        timeout: float = DEFAULT_TIMEOUT_S,
        max_concurrency: int | None = None,
        difficulty_estimator: DifficultyEstimator | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        for field_name, value in (
            ("min_candidates", min_candidates),
            ("max_candidates", max_candidates),
            ("batch_size", batch_size),
        ):
            if not _is_positive_int(value):
                raise SelfConsistencyConfigError(
                    f"{field_name} must be a positive integer: {value!r}",
                    reason=f"{field_name}_must_be_positive",
                )
        if max_concurrency is not None and not _is_positive_int(max_concurrency):
            raise SelfConsistencyConfigError(
                f"max_concurrency must be a positive integer: {max_concurrency!r}",
                reason=ErrorReason.MAX_CONCURRENCY_MUST_BE_POSITIVE,
            )
        if (
            not isinstance(early_stop_threshold, Real)
            or isinstance(early_stop_threshold, bool)
            or not 0.0 <= float(early_stop_threshold) <= 1.0
        ):
            raise SelfConsistencyConfigError(
                f"early_stop_threshold must be within [0, 1]: {early_stop_threshold!r}",
                reason=ErrorReason.INVALID_THRESHOLD,
            )
        if min_candidates > max_candidates:
            raise SelfConsistencyConfigError(
                f"min_candidates ({min_candidates}) must not exceed max_candidates ({max_candidates})",
                reason=ErrorReason.MIN_CANDIDATES_MUST_BE_LESS_THAN_MAX,
            )
        self._validate_timeout(timeout)
        self.min_candidates = min_candidates
        self.max_candidates = max_candidates
        self.batch_size = batch_size
        self.early_stop_threshold = float(early_stop_threshold)
        self.aggregator = self._resolve_aggregator(aggregator)
        self.timeout = float(timeout)
        self.max_concurrency = max_concurrency
        self.difficulty_estimator = difficulty_estimator
        self.event_logger = event_logger
        self._checker = ConsensusChecker(self.aggregator)

    @staticmethod
    def _validate_timeout(timeout: object) -> None:
        if (
            not isinstance(timeout, Real)
            or isinstance(timeout, bool)
            or not MIN_TIMEOUT_S <= float(timeout) <= MAX_TIMEOUT_S
        ):
            raise SelfConsistencyConfigError(
                f"timeout must be within [{MIN_TIMEOUT_S}, {MAX_TIMEOUT_S}] seconds: {timeout!r}",
                reason=ErrorReason.INVALID_TIMEOUT,
            )

    @staticmethod
    def _resolve_aggregator(aggregator: Aggregator | str) -> Aggregator:
        if isinstance(aggregator, str):
            try:
                return resolve_aggregator(aggregator)
            except ValueError as exc:
                raise SelfConsistencyConfigError(
                    str(exc), reason=ErrorReason.AGGREGATOR_MUST_IMPLEMENT_AGGREGATE
                ) from exc
        if not callable(getattr(aggregator, "aggregate", None)):
            raise SelfConsistencyConfigError(
                "aggregator must implement aggregate()", reason=ErrorReason.AGGREGATOR_MUST_IMPLEMENT_AGGREGATE
            )
        return aggregator

    def for_budget(self, budget: ComputeBudget) -> AdaptiveSelfConsistency:
        """予算の候補数を上限とするサンプラーを新たに構築する。"""

        max_candidates = budget.num_candidates
        return AdaptiveSelfConsistency(
            min_candidates=min(self.min_candidates, max_candidates),
            max_candidates=max_candidates,
            batch_size=self.batch_size,
            early_stop_threshold=self.early_stop_threshold,
            aggregator=self.aggregator,
            timeout=self.timeout,
            max_concurrency=self.max_concurrency,
            difficulty_estimator=self.difficulty_estimator,
            event_logger=self.event_logger,
        )

    def resolve_difficulty(
        self,
        query: str,
        difficulty: DifficultyEstimate | DifficultyLevel | str | None,
        context: Mapping[str, Any],
    ) -> DifficultyEstimate:
        """明示指定 → 推定器 → medium の順に難易度を決める。"""

        if isinstance(difficulty, DifficultyEstimate):
            return difficulty
        if difficulty is not None:
            return DifficultyEstimate.for_level(difficulty)
        if self.difficulty_estimator is not None:
            return self.difficulty_estimator.estimate(query, context)
        return DifficultyEstimate.for_level(DifficultyLevel.MEDIUM)

    def check_consensus(self, candidates: list[Candidate]) -> ConsensusCheck:
        return self._checker.check(candidates, self.early_stop_threshold)

    def run(
        self,
        query: str,
        *,
        generator: Generator | Any,
        difficulty: DifficultyEstimate | DifficultyLevel | str | None = None,
        context: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> SelfConsistencyResult:
        """候補を生成・集約して最良の候補とメタデータを返す。"""

        generate = _resolve_generator(generator)
        ctx: Mapping[str, Any] = dict(context or {})
        deadline = self.timeout if timeout is None else timeout
        self._validate_timeout(deadline)
        estimate = self.resolve_difficulty(query, difficulty, ctx)
        level = estimate.level
        state = _RunState(
            level=level,
            initial_n=initial_n_for(level, min_candidates=self.min_candidates, max_candidates=self.max_candidates),
            max_n=max_n_for(level, min_candidates=self.min_candidates, max_candidates=self.max_candidates),
            candidates=[],
        )
        LOGGER.debug(
            "self-consistency start level=%s initial_n=%d max_n=%d", level.value, state.initial_n, state.max_n
        )
        result = run_with_deadline(
            partial(self._sample, query, generate, ctx, state),
            timeout=float(deadline),
            label="self-consistency run",
        )
        emit_safely(self.event_logger, "self_consistency_stop", {"query_length": len(query), **result.metadata})
        return result

    def _sample(
        self,
        query: str,
        generate: Callable[[str, Mapping[str, Any]], Any],
        context: Mapping[str, Any],
        state: _RunState,
        cancel_event: Event,
    ) -> SelfConsistencyResult:
        while True:
            if cancel_event.is_set():
                raise AccuracyTimeoutError("self-consistency run cancelled")
            batch = adjust_n(state.level, len(state.candidates), max_n=state.max_n, batch_size=self.batch_size)
            if batch == 0:
                return self._finish(state, early_stopped=False)
            state.candidates.extend(self._generate_batch(query, generate, context, batch))
            if len(state.candidates) < self.min_candidates:
                continue
            state.last_check = self._safe_check(state.candidates)
            if state.last_check is not None and state.last_check.reached:
                LOGGER.info(
                    "early stop after %d candidates (agreement=%.3f)",
                    len(state.candidates),
                    state.last_check.agreement,
                )
                return self._finish(state, early_stopped=True)
            if len(state.candidates) >= state.max_n:
                return self._finish(state, early_stopped=False)

    def _safe_check(self, candidates: list[Candidate]) -> ConsensusCheck | None:
        # 合意判定の失敗は「合意なし」として扱いサンプリングを続ける
        try:
            return self.check_consensus(candidates)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("consensus check failed, continuing: %s", exc)
            return None

    def _generate_batch(
        self,
        query: str,
        generate: Callable[[str, Mapping[str, Any]], Any],
        context: Mapping[str, Any],
        size: int,
    ) -> list[Candidate]:
        workers = [partial(generate, query, context) for _ in range(size)]
        produced: list[Candidate] = []
        failures: list[BaseException] = []
        for outcome in collect_outcomes_sync(workers, max_concurrency=self.max_concurrency):
            if outcome.error is not None:
                failures.append(outcome.error)
                LOGGER.warning("generation %d failed: %s", outcome.index, outcome.error)
                continue
            try:
                produced.append(_as_candidate(outcome.value))
            except TypeError as exc:
                failures.append(exc)
                LOGGER.warning("generation %d returned an invalid value: %s", outcome.index, exc)
        if not produced:
            raise AllGeneratorsFailedError(f"all {size} generations in batch failed", failures=failures)
        LOGGER.debug("batch produced %d/%d candidates", len(produced), size)
        return produced

    def _finish(self, state: _RunState, *, early_stopped: bool) -> SelfConsistencyResult:
        candidates = state.candidates
        if not candidates:
            raise NoCandidatesError("no candidates to aggregate", reason=ErrorReason.NO_CANDIDATES_TO_AGGREGATE)
        metadata: dict[str, Any] = {
            "actual_n": len(candidates),
            "early_stopped": early_stopped,
            "difficulty_level": state.level.value,
            "initial_n": state.initial_n,
            "max_n": state.max_n,
        }
        try:
            aggregated = self.aggregator.aggregate(candidates)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("final aggregation failed, returning first candidate: %s", exc)
            metadata["consensus"] = state.last_check.agreement if state.last_check else 0.0
            metadata["aggregation_error"] = True
            return SelfConsistencyResult(candidate=candidates[0], metadata=metadata)

        if state.last_check is not None:
            metadata["consensus"] = state.last_check.agreement
        else:
            metadata["consensus"] = float(aggregated.metadata.get("confidence") or 0.0)
        metadata["aggregation_metadata"] = dict(aggregated.metadata)
        return SelfConsistencyResult(candidate=aggregated.chosen, metadata=metadata)
