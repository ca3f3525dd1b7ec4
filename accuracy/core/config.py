"""設定ファイル関連の公開 API ファサード。"""

from __future__ import annotations

from .loader import (
    AccuracyConfig,
    build_budgeter,
    build_self_consistency,
    build_verification_runner,
    ConfigError,
    load_accuracy_config,
    load_budgeter,
    load_self_consistency,
    load_verification_runner,
)
from .schema import (
    AccuracyConfigModel,
    BudgeterConfigModel,
    ComputeBudgetModel,
    SelfConsistencyConfigModel,
    VerificationConfigModel,
    VerifierEntryModel,
)

__all__ = [
    "AccuracyConfig",
    "AccuracyConfigModel",
    "BudgeterConfigModel",
    "ComputeBudgetModel",
    "ConfigError",
    "SelfConsistencyConfigModel",
    "VerificationConfigModel",
    "VerifierEntryModel",
    "build_budgeter",
    "build_self_consistency",
    "build_verification_runner",
    "load_accuracy_config",
    "load_budgeter",
    "load_self_consistency",
    "load_verification_runner",
]
