"""計算予算モデルと予算配分ロジック。"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
import logging
import math
from numbers import Real
from typing import Any

from .errors import BudgetExhaustedError, BudgetValidationError, ErrorReason, UnknownLevelError
from .models import DifficultyEstimate, DifficultyLevel
from .thresholds import DEFAULT_PRM_THRESHOLD

__all__ = [
    "CANDIDATE_COST",
    "PRM_STEP_COST",
    "SEARCH_ITERATION_COST",
    "REFINEMENT_COST",
    "DEFAULT_SEARCH_ITERATIONS",
    "compute_cost",
    "ComputeBudget",
    "ComputeBudgeter",
    "UsageStats",
]

LOGGER = logging.getLogger(__name__)

CANDIDATE_COST = 1.0
PRM_STEP_COST = 0.5
SEARCH_ITERATION_COST = 0.01
REFINEMENT_COST = 1.0
DEFAULT_SEARCH_ITERATIONS = 50


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def compute_cost(
    num_candidates: int,
    *,
    use_prm: bool,
    use_search: bool,
    search_iterations: int | None,
    max_refinements: int,
) -> float:
    """予算構成から相対コストを算出する。"""

    cost = num_candidates * CANDIDATE_COST
    if use_prm:
        cost += num_candidates * PRM_STEP_COST
    if use_search:
        cost += (search_iterations or 0) * SEARCH_ITERATION_COST
    cost += max_refinements * REFINEMENT_COST
    return cost


@dataclass(frozen=True, slots=True)
class ComputeBudget:
    """1 クエリに割り当てる計算予算。``cost`` は構成から導出される。"""

    num_candidates: int
    use_prm: bool = False
    use_search: bool = False
    max_refinements: int = 0
    search_iterations: int | None = None
    prm_threshold: float = DEFAULT_PRM_THRESHOLD
    metadata: Mapping[str, Any] = field(default_factory=dict)
    cost: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        if not _is_positive_int(self.num_candidates):
            raise BudgetValidationError(
                f"num_candidates must be a positive integer: {self.num_candidates!r}",
                reason=ErrorReason.INVALID_NUM_CANDIDATES,
            )
        if (
            not isinstance(self.max_refinements, int)
            or isinstance(self.max_refinements, bool)
            or self.max_refinements < 0
        ):
            raise BudgetValidationError(
                f"max_refinements must be a non-negative integer: {self.max_refinements!r}",
                reason=ErrorReason.INVALID_MAX_REFINEMENTS,
            )
        if self.search_iterations is not None and not _is_positive_int(self.search_iterations):
            raise BudgetValidationError(
                f"search_iterations must be a positive integer: {self.search_iterations!r}",
                reason=ErrorReason.INVALID_SEARCH_ITERATIONS,
            )
        if not _is_number(self.prm_threshold) or not 0.0 <= float(self.prm_threshold) <= 1.0:
            raise BudgetValidationError(
                f"prm_threshold must be within [0, 1]: {self.prm_threshold!r}",
                reason=ErrorReason.INVALID_PRM_THRESHOLD,
            )
        object.__setattr__(self, "use_prm", bool(self.use_prm))
        object.__setattr__(self, "use_search", bool(self.use_search))
        if self.use_search and self.search_iterations is None:
            object.__setattr__(self, "search_iterations", DEFAULT_SEARCH_ITERATIONS)
        object.__setattr__(
            self,
            "cost",
            compute_cost(
                self.num_candidates,
                use_prm=self.use_prm,
                use_search=self.use_search,
                search_iterations=self.search_iterations,
                max_refinements=self.max_refinements,
            ),
        )

    @classmethod
    def new(cls, **attrs: Any) -> ComputeBudget:
        """キーワード引数から予算を構築する。``cost`` は受け付けない。"""

        if "cost" in attrs:
            raise BudgetValidationError("cost is derived and cannot be set", reason=ErrorReason.INVALID_BUDGET)
        return cls(**attrs)

    @classmethod
    def easy(cls) -> ComputeBudget:
        return cls(num_candidates=3)

    @classmethod
    def medium(cls) -> ComputeBudget:
        return cls(num_candidates=5, use_prm=True, max_refinements=1)

    @classmethod
    def hard(cls) -> ComputeBudget:
        return cls(num_candidates=10, use_prm=True, use_search=True, search_iterations=50, max_refinements=2)

    @classmethod
    def for_level(cls, level: DifficultyLevel | str) -> ComputeBudget:
        """難易度レベルに対応するプリセット予算を返す。"""

        try:
            parsed = DifficultyLevel.parse(level)
        except ValueError as exc:
            raise UnknownLevelError(level) from exc
        if parsed is DifficultyLevel.EASY:
            return cls.easy()
        if parsed is DifficultyLevel.HARD:
            return cls.hard()
        return cls.medium()

    def to_map(self) -> dict[str, Any]:
        return {
            "num_candidates": self.num_candidates,
            "use_prm": self.use_prm,
            "use_search": self.use_search,
            "max_refinements": self.max_refinements,
            "search_iterations": self.search_iterations,
            "prm_threshold": self.prm_threshold,
            "cost": self.cost,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_map(cls, payload: Mapping[str, Any]) -> ComputeBudget:
        """マップから予算を復元する。型の合わない任意項目は無視し、コストは再計算する。"""

        attrs: dict[str, Any] = {"num_candidates": payload.get("num_candidates")}
        for key in ("use_prm", "use_search"):
            value = payload.get(key)
            if isinstance(value, bool):
                attrs[key] = value
        refinements = payload.get("max_refinements")
        if isinstance(refinements, int) and not isinstance(refinements, bool):
            attrs["max_refinements"] = refinements
        iterations = payload.get("search_iterations")
        if isinstance(iterations, int) and not isinstance(iterations, bool):
            attrs["search_iterations"] = iterations
        threshold = payload.get("prm_threshold")
        if _is_number(threshold):
            attrs["prm_threshold"] = float(threshold)
        metadata = payload.get("metadata")
        if isinstance(metadata, Mapping):
            attrs["metadata"] = dict(metadata)
        return cls(**attrs)


@dataclass(frozen=True, slots=True)
class UsageStats:
    """予算消化の統計値。"""

    used_budget: float
    allocation_count: int
    remaining_budget: float | str
    average_cost: float

    def to_map(self) -> dict[str, Any]:
        return {
            "used_budget": self.used_budget,
            "allocation_count": self.allocation_count,
            "remaining_budget": self.remaining_budget,
            "average_cost": self.average_cost,
        }


def _default_custom() -> dict[str, ComputeBudget]:
    return {}


@dataclass(frozen=True, slots=True)
class ComputeBudgeter:
    """難易度に応じて予算を配分し、グローバル上限に対する消化を追跡する。

    すべての更新操作は新しい ``ComputeBudgeter`` を返す。内部で同期は取らないため、
    複数スレッドから共有する場合は呼び出し側で直列化すること。
    """

    easy_budget: ComputeBudget = field(default_factory=ComputeBudget.easy)
    medium_budget: ComputeBudget = field(default_factory=ComputeBudget.medium)
    hard_budget: ComputeBudget = field(default_factory=ComputeBudget.hard)
    global_limit: float | None = None
    used_budget: float = 0.0
    allocation_count: int = 0
    custom_allocations: Mapping[str, ComputeBudget] = field(default_factory=_default_custom)

    def __post_init__(self) -> None:
        for name in ("easy_budget", "medium_budget", "hard_budget"):
            if not isinstance(getattr(self, name), ComputeBudget):
                raise BudgetValidationError(f"{name} must be a ComputeBudget", reason=ErrorReason.INVALID_BUDGET)
        if self.global_limit is not None and (
            not _is_number(self.global_limit) or float(self.global_limit) <= 0
        ):
            raise BudgetValidationError(
                f"global_limit must be a positive number or None: {self.global_limit!r}",
                reason=ErrorReason.INVALID_GLOBAL_LIMIT,
            )
        for key, budget in self.custom_allocations.items():
            if not isinstance(budget, ComputeBudget):
                raise BudgetValidationError(
                    f"custom allocation {key!r} must be a ComputeBudget", reason=ErrorReason.INVALID_BUDGET
                )
        object.__setattr__(
            self, "custom_allocations", {str(key): value for key, value in self.custom_allocations.items()}
        )

    def budget_for_level(self, level: DifficultyLevel | str) -> ComputeBudget:
        """プリセットまたはカスタム配分から予算を引く。課金はしない。"""

        if isinstance(level, DifficultyLevel):
            return self._preset(level)
        name = str(level).strip()
        try:
            return self._preset(DifficultyLevel.parse(name))
        except ValueError:
            pass
        budget = self.custom_allocations.get(name)
        if budget is None:
            raise UnknownLevelError(level)
        return budget

    def _preset(self, level: DifficultyLevel) -> ComputeBudget:
        if level is DifficultyLevel.EASY:
            return self.easy_budget
        if level is DifficultyLevel.HARD:
            return self.hard_budget
        return self.medium_budget

    def allocate(
        self, level: DifficultyEstimate | DifficultyLevel | str
    ) -> tuple[ComputeBudget, ComputeBudgeter]:
        """難易度に応じた予算を割り当て、更新後の budgeter と共に返す。"""

        if isinstance(level, DifficultyEstimate):
            level = level.level
        return self._charge(self.budget_for_level(level))

    def allocate_for_easy(self) -> tuple[ComputeBudget, ComputeBudgeter]:
        return self.allocate(DifficultyLevel.EASY)

    def allocate_for_medium(self) -> tuple[ComputeBudget, ComputeBudgeter]:
        return self.allocate(DifficultyLevel.MEDIUM)

    def allocate_for_hard(self) -> tuple[ComputeBudget, ComputeBudgeter]:
        return self.allocate(DifficultyLevel.HARD)

    def custom_allocation(self, num_candidates: int, **options: Any) -> tuple[ComputeBudget, ComputeBudgeter]:
        """任意の候補数で予算を組み立てて割り当てる。"""

        budget = ComputeBudget.new(num_candidates=num_candidates, **options)
        return self._charge(budget)

    def _charge(self, budget: ComputeBudget) -> tuple[ComputeBudget, ComputeBudgeter]:
        if not self.check_budget(budget.cost):
            remaining = self.remaining_budget()
            LOGGER.info("budget exhausted: requested=%.2f remaining=%.2f", budget.cost, remaining)
            raise BudgetExhaustedError(
                f"allocation of {budget.cost:.2f} exceeds remaining budget {remaining:.2f}",
                requested=budget.cost,
                remaining=remaining,
            )
        updated = replace(
            self,
            used_budget=self.used_budget + budget.cost,
            allocation_count=self.allocation_count + 1,
        )
        LOGGER.debug("allocated budget cost=%.2f used=%.2f", budget.cost, updated.used_budget)
        return budget, updated

    def check_budget(self, cost: float) -> bool:
        """``cost`` を追加してもグローバル上限内に収まるかを返す。"""

        if self.global_limit is None:
            return True
        return self.used_budget + cost <= self.global_limit

    def remaining_budget(self) -> float:
        """残り予算を返す。上限なしの場合は ``math.inf``。"""

        if self.global_limit is None:
            return math.inf
        return max(0.0, float(self.global_limit) - self.used_budget)

    def is_exhausted(self) -> bool:
        if self.global_limit is None:
            return False
        return self.used_budget >= self.global_limit

    def track_usage(self, cost: float) -> ComputeBudgeter:
        """割り当て外で消費したコストを記録する。割り当て回数は変えない。"""

        if not _is_number(cost) or cost < 0:
            raise BudgetValidationError(f"cost must be a non-negative number: {cost!r}", reason=ErrorReason.INVALID_COST)
        return replace(self, used_budget=self.used_budget + float(cost))

    def reset_budget(self) -> ComputeBudgeter:
        """消化量と割り当て回数をリセットする。構成は保持する。"""

        return replace(self, used_budget=0.0, allocation_count=0)

    def get_usage_stats(self) -> UsageStats:
        remaining: float | str
        if self.global_limit is None:
            remaining = "infinite"
        else:
            remaining = self.remaining_budget()
        average = self.used_budget / self.allocation_count if self.allocation_count > 0 else 0.0
        return UsageStats(
            used_budget=self.used_budget,
            allocation_count=self.allocation_count,
            remaining_budget=remaining,
            average_cost=average,
        )
