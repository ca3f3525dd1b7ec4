"""精度パイプラインで受け渡す値オブジェクト。"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any
import uuid

from . import thresholds

__all__ = [
    "Candidate",
    "DifficultyLevel",
    "DifficultyEstimate",
    "VerificationResult",
    "VerifierConfig",
    "SelfConsistencyResult",
    "ScoredNode",
]


def _new_id() -> str:
    return uuid.uuid4().hex


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class Candidate:
    """生成器が返す 1 件の回答候補。"""

    content: str | None = None
    id: str = field(default_factory=_new_id)
    score: float | None = None
    tokens_used: int | None = None
    reasoning: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: DifficultyLevel | str) -> DifficultyLevel:
        """文字列または列挙値から難易度レベルを得る。"""

        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True, slots=True)
class DifficultyEstimate:
    """難易度推定の結果。"""

    level: DifficultyLevel
    score: float
    confidence: float | None = None
    reasoning: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", DifficultyLevel.parse(self.level))
        if not _is_number(self.score) or not 0.0 <= float(self.score) <= 1.0:
            raise ValueError(f"difficulty score must be within [0, 1]: {self.score!r}")
        if self.confidence is not None and (
            not _is_number(self.confidence) or not 0.0 <= float(self.confidence) <= 1.0
        ):
            raise ValueError(f"difficulty confidence must be within [0, 1]: {self.confidence!r}")

    @classmethod
    def from_score(cls, score: float, **kwargs: Any) -> DifficultyEstimate:
        """スコアからレベルを導出して推定値を構築する。"""

        return cls(level=DifficultyLevel(thresholds.level_for_score(score)), score=score, **kwargs)

    @classmethod
    def for_level(cls, level: DifficultyLevel | str) -> DifficultyEstimate:
        """レベルの代表スコアで推定値を構築する。"""

        parsed = DifficultyLevel.parse(level)
        return cls(level=parsed, score=thresholds.level_to_score(parsed.value))

    def is_easy(self) -> bool:
        return self.level is DifficultyLevel.EASY

    def is_medium(self) -> bool:
        return self.level is DifficultyLevel.MEDIUM

    def is_hard(self) -> bool:
        return self.level is DifficultyLevel.HARD


@dataclass(slots=True)
class VerificationResult:
    """検証器 1 回分（または集約後）の結果。"""

    candidate_id: str | None = None
    score: float | None = None
    confidence: float | None = None
    reasoning: str | None = None
    step_scores: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.score is not None and not _is_number(self.score):
            raise ValueError(f"score must be numeric or None: {self.score!r}")
        if self.confidence is not None and (
            not _is_number(self.confidence) or not 0.0 <= float(self.confidence) <= 1.0
        ):
            raise ValueError(f"confidence must be within [0, 1]: {self.confidence!r}")
        if self.step_scores is not None and not isinstance(self.step_scores, Mapping):
            raise ValueError("step_scores must be a mapping")

    def passed(self, threshold: float = 0.5) -> bool:
        """スコアが閾値以上なら合格とみなす。"""

        return self.score is not None and float(self.score) >= threshold

    def merge_step_scores(self, other: Mapping[str, Any] | None) -> VerificationResult:
        """ステップスコアを後勝ちでマージした新しい結果を返す。"""

        merged = dict(self.step_scores or {})
        merged.update(other or {})
        return VerificationResult(
            candidate_id=self.candidate_id,
            score=self.score,
            confidence=self.confidence,
            reasoning=self.reasoning,
            step_scores=merged,
            metadata=dict(self.metadata),
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "score": self.score,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "step_scores": dict(self.step_scores) if self.step_scores is not None else None,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_map(cls, payload: Mapping[str, Any]) -> VerificationResult:
        step_scores = payload.get("step_scores")
        metadata = payload.get("metadata")
        return cls(
            candidate_id=payload.get("candidate_id"),
            score=payload.get("score"),
            confidence=payload.get("confidence"),
            reasoning=payload.get("reasoning"),
            step_scores=dict(step_scores) if isinstance(step_scores, Mapping) else None,
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )


@dataclass(frozen=True, slots=True)
class VerifierConfig:
    """検証器とその設定・重みの組。"""

    verifier: Any
    config: Mapping[str, Any] = field(default_factory=dict)
    weight: float = 1.0
    name: str | None = None

    @property
    def verifier_id(self) -> str:
        if self.name:
            return self.name
        if isinstance(self.verifier, str):
            return self.verifier
        if isinstance(self.verifier, type):
            return self.verifier.__name__
        return type(self.verifier).__name__


@dataclass(slots=True)
class SelfConsistencyResult:
    """適応的自己一貫性サンプリングの最終結果。"""

    candidate: Candidate
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def actual_n(self) -> int:
        return int(self.metadata.get("actual_n", 0))

    @property
    def early_stopped(self) -> bool:
        return bool(self.metadata.get("early_stopped", False))


@dataclass(order=True, frozen=True, slots=True)
class ScoredNode:
    """スコアのみで比較される候補ラッパー。"""

    score: float
    candidate: Candidate = field(compare=False)
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)
