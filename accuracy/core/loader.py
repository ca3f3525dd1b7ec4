"""設定ファイルの読み込みユーティリティ。"""
from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from pydantic import BaseModel, ValidationError
import yaml

from .budgets import ComputeBudget, ComputeBudgeter
from .errors import AccuracyError, ConfigError as _ConfigErrorBase
from .models import VerifierConfig
from .observability import EventLogger
from .schema import (
    AccuracyConfigModel,
    BudgeterConfigModel,
    ComputeBudgetModel,
    SelfConsistencyConfigModel,
    VerificationConfigModel,
)
from .self_consistency import AdaptiveSelfConsistency
from .verification import VerificationRunner

__all__ = [
    "AccuracyConfig",
    "ConfigError",
    "build_budgeter",
    "build_self_consistency",
    "build_verification_runner",
    "load_accuracy_config",
    "load_budgeter",
    "load_self_consistency",
    "load_verification_runner",
]


class ConfigError(_ConfigErrorBase):
    """設定ファイルの検証エラー。"""


@dataclass(slots=True)
class AccuracyConfig:
    """設定ファイルから構築した実行時オブジェクト一式。"""

    path: Path
    budgeter: ComputeBudgeter
    self_consistency: AdaptiveSelfConsistency
    verification: VerificationRunner | None


def _format_validation_error(path: Path, exc: ValidationError) -> str:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part is not None)
        message = error.get("msg", "未知のエラー")
        if location:
            details.append(f"{location}: {message}")
        else:
            details.append(message)
    summary = "; ".join(details)
    return f"設定ファイルの検証に失敗しました ({path}): {summary}"


def _load_yaml(path: str | Path) -> MutableMapping[str, object]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"設定ファイルを読み込めません ({path}): {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML の解析に失敗しました ({path}): {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"YAML の内容が辞書ではありません: {path}")
    return cast(MutableMapping[str, object], data)


def _validate(model_cls: type[BaseModel], path: Path, data: object) -> BaseModel:
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(path, exc)) from None


def _section(data: MutableMapping[str, object], key: str) -> object:
    # セクション単体のファイルも、全体設定ファイルの該当セクションも受け付ける
    if key in data:
        return data[key] if data[key] is not None else {}
    return data


def _budget(model: ComputeBudgetModel | None) -> ComputeBudget | None:
    if model is None:
        return None
    return ComputeBudget(**model.model_dump())


def build_budgeter(model: BudgeterConfigModel) -> ComputeBudgeter:
    presets = {
        name: budget
        for name, budget in (
            ("easy_budget", _budget(model.easy)),
            ("medium_budget", _budget(model.medium)),
            ("hard_budget", _budget(model.hard)),
        )
        if budget is not None
    }
    custom = {name: ComputeBudget(**entry.model_dump()) for name, entry in model.custom_allocations.items()}
    return ComputeBudgeter(global_limit=model.global_limit, custom_allocations=custom, **presets)


def build_self_consistency(
    model: SelfConsistencyConfigModel, *, event_logger: EventLogger | None = None
) -> AdaptiveSelfConsistency:
    return AdaptiveSelfConsistency(
        min_candidates=model.min_candidates,
        max_candidates=model.max_candidates,
        batch_size=model.batch_size,
        early_stop_threshold=model.early_stop_threshold,
        aggregator=model.aggregator,
        timeout=model.timeout_s,
        max_concurrency=model.max_concurrency,
        event_logger=event_logger,
    )


def build_verification_runner(
    model: VerificationConfigModel, *, event_logger: EventLogger | None = None
) -> VerificationRunner:
    verifiers = [
        VerifierConfig(verifier=entry.verifier, config=entry.config, weight=entry.weight, name=entry.name)
        for entry in model.verifiers
    ]
    return VerificationRunner(
        verifiers,
        parallel=model.parallel,
        aggregation=model.aggregation,
        on_error=model.on_error,
        timeout=model.timeout_s,
        max_concurrency=model.max_concurrency,
        event_logger=event_logger,
    )


def _wrap_runtime_error(path: Path, exc: AccuracyError) -> ConfigError:
    return ConfigError(f"設定値が不正です ({path}): {exc}", reason=exc.reason)


def load_budgeter(path: str | Path) -> ComputeBudgeter:
    """予算配分器の設定を読み込む。"""

    path = Path(path)
    data = _load_yaml(path)
    model = cast(BudgeterConfigModel, _validate(BudgeterConfigModel, path, _section(data, "budgeter")))
    try:
        return build_budgeter(model)
    except AccuracyError as exc:
        raise _wrap_runtime_error(path, exc) from exc


def load_self_consistency(
    path: str | Path, *, event_logger: EventLogger | None = None
) -> AdaptiveSelfConsistency:
    """自己一貫性サンプラーの設定を読み込む。"""

    path = Path(path)
    data = _load_yaml(path)
    model = cast(
        SelfConsistencyConfigModel,
        _validate(SelfConsistencyConfigModel, path, _section(data, "self_consistency")),
    )
    try:
        return build_self_consistency(model, event_logger=event_logger)
    except AccuracyError as exc:
        raise _wrap_runtime_error(path, exc) from exc


def load_verification_runner(
    path: str | Path, *, event_logger: EventLogger | None = None
) -> VerificationRunner:
    """検証ランナーの設定を読み込む。"""

    path = Path(path)
    data = _load_yaml(path)
    model = cast(
        VerificationConfigModel,
        _validate(VerificationConfigModel, path, _section(data, "verification")),
    )
    try:
        return build_verification_runner(model, event_logger=event_logger)
    except AccuracyError as exc:
        raise _wrap_runtime_error(path, exc) from exc


def load_accuracy_config(path: str | Path, *, event_logger: EventLogger | None = None) -> AccuracyConfig:
    """全セクションを読み込み実行時オブジェクトを構築する。"""

    path = Path(path)
    data = _load_yaml(path)
    model = cast(AccuracyConfigModel, _validate(AccuracyConfigModel, path, data))
    try:
        return AccuracyConfig(
            path=path,
            budgeter=build_budgeter(model.budgeter),
            self_consistency=build_self_consistency(model.self_consistency, event_logger=event_logger),
            verification=(
                None
                if model.verification is None
                else build_verification_runner(model.verification, event_logger=event_logger)
            ),
        )
    except AccuracyError as exc:
        raise _wrap_runtime_error(path, exc) from exc
