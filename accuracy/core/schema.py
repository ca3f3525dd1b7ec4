"""設定ファイル検証用の Pydantic モデル。"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "ComputeBudgetModel",
    "BudgeterConfigModel",
    "SelfConsistencyConfigModel",
    "VerifierEntryModel",
    "VerificationConfigModel",
    "AccuracyConfigModel",
]


class ComputeBudgetModel(BaseModel):
    """計算予算プリセットのスキーマ。"""

    model_config = ConfigDict(extra="forbid")

    num_candidates: int = Field(gt=0)
    use_prm: bool = False
    use_search: bool = False
    max_refinements: int = Field(default=0, ge=0)
    search_iterations: int | None = Field(default=None, gt=0)
    prm_threshold: float = Field(default=0.5, ge=0.0, le=1.0)


class BudgeterConfigModel(BaseModel):
    """予算配分器のスキーマ。省略したプリセットは既定値を使う。"""

    model_config = ConfigDict(extra="forbid")

    global_limit: float | None = Field(default=None, gt=0)
    easy: ComputeBudgetModel | None = None
    medium: ComputeBudgetModel | None = None
    hard: ComputeBudgetModel | None = None
    custom_allocations: dict[str, ComputeBudgetModel] = Field(default_factory=dict)


class SelfConsistencyConfigModel(BaseModel):
    """適応的自己一貫性サンプラーのスキーマ。"""

    model_config = ConfigDict(extra="forbid")

    min_candidates: int = Field(default=3, gt=0)
    max_candidates: int = Field(default=20, gt=0)
    batch_size: int = Field(default=3, gt=0)
    early_stop_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    aggregator: str = "majority_vote"
    timeout_s: float = Field(default=30.0, ge=1.0, le=300.0)
    max_concurrency: int | None = Field(default=None, gt=0)


class VerifierEntryModel(BaseModel):
    """検証器 1 件分のスキーマ。"""

    model_config = ConfigDict(extra="forbid")

    verifier: str
    name: str | None = None
    weight: float = Field(default=1.0, ge=0.0)
    config: dict[str, Any] = Field(default_factory=dict)


class VerificationConfigModel(BaseModel):
    """検証ランナーのスキーマ。"""

    model_config = ConfigDict(extra="forbid")

    verifiers: list[VerifierEntryModel] = Field(default_factory=list)
    parallel: bool = False
    aggregation: Literal["weighted_avg", "max", "min", "sum", "product"] = "weighted_avg"
    on_error: Literal["continue", "halt"] = "continue"
    timeout_s: float | None = Field(default=30.0, gt=0)
    max_concurrency: int | None = Field(default=None, gt=0)


class AccuracyConfigModel(BaseModel):
    """設定ファイル全体のスキーマ。"""

    model_config = ConfigDict(extra="forbid")

    schema_version: int | None = None
    budgeter: BudgeterConfigModel = Field(default_factory=BudgeterConfigModel)
    self_consistency: SelfConsistencyConfigModel = Field(default_factory=SelfConsistencyConfigModel)
    verification: VerificationConfigModel | None = None
