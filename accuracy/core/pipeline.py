"""予算配分 → 自己一貫性サンプリング → 検証 を連結するパイプライン。"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Any

from .budgets import ComputeBudget, ComputeBudgeter
from .models import Candidate, DifficultyEstimate, DifficultyLevel, SelfConsistencyResult, VerificationResult
from .observability import emit_safely, EventLogger
from .self_consistency import AdaptiveSelfConsistency, Generator
from .verification import VerificationRunner

__all__ = ["AccuracyPipeline", "PipelineResult"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    candidate: Candidate
    budget: ComputeBudget
    difficulty: DifficultyEstimate
    sampling: SelfConsistencyResult
    verification: VerificationResult | None = None
    passed: bool | None = None


class AccuracyPipeline:
    """1 クエリ分の処理を順に実行する。

    ``ComputeBudgeter`` は不変値のため、パイプラインが最新の値を保持し
    ロックで更新を直列化する。
    """

    def __init__(
        self,
        budgeter: ComputeBudgeter,
        sampler: AdaptiveSelfConsistency,
        runner: VerificationRunner | None = None,
        *,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._budgeter = budgeter
        self._sampler = sampler
        self._runner = runner
        self._event_logger = event_logger
        self._lock = Lock()

    @property
    def budgeter(self) -> ComputeBudgeter:
        with self._lock:
            return self._budgeter

    def _allocate(self, estimate: DifficultyEstimate) -> ComputeBudget:
        with self._lock:
            budget, self._budgeter = self._budgeter.allocate(estimate)
            used = self._budgeter.used_budget
        emit_safely(
            self._event_logger,
            "budget_allocated",
            {"level": estimate.level.value, "cost": budget.cost, "used_budget": used},
        )
        return budget

    def run(
        self,
        query: str,
        *,
        generator: Generator | Any,
        difficulty: DifficultyEstimate | DifficultyLevel | str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> PipelineResult:
        ctx = dict(context or {})
        estimate = self._sampler.resolve_difficulty(query, difficulty, ctx)
        budget = self._allocate(estimate)
        sampling = self._sampler.for_budget(budget).run(
            query, generator=generator, difficulty=estimate, context=ctx
        )
        result = PipelineResult(
            candidate=sampling.candidate,
            budget=budget,
            difficulty=estimate,
            sampling=sampling,
        )
        if self._runner is not None:
            result.verification = self._runner.verify_candidate(sampling.candidate, ctx)
            result.passed = result.verification.passed(budget.prm_threshold)
        LOGGER.info(
            "pipeline finished level=%s cost=%.2f actual_n=%d passed=%s",
            estimate.level.value,
            budget.cost,
            sampling.actual_n,
            result.passed,
        )
        return result
