"""難易度判定・早期停止・合意判定で共有する閾値。"""
from __future__ import annotations

__all__ = [
    "EASY_THRESHOLD",
    "HARD_THRESHOLD",
    "EARLY_STOP_THRESHOLD",
    "HIGH_CONSENSUS_THRESHOLD",
    "LOW_CONSENSUS_THRESHOLD",
    "DEFAULT_PRM_THRESHOLD",
    "LEVEL_SCORES",
    "is_easy",
    "is_hard",
    "level_for_score",
    "level_to_score",
]

# score < EASY_THRESHOLD -> easy, score > HARD_THRESHOLD -> hard
EASY_THRESHOLD = 0.35
HARD_THRESHOLD = 0.65

EARLY_STOP_THRESHOLD = 0.8
HIGH_CONSENSUS_THRESHOLD = 0.9
LOW_CONSENSUS_THRESHOLD = 0.6
DEFAULT_PRM_THRESHOLD = 0.5

# 各レベル区間の中央値
LEVEL_SCORES: dict[str, float] = {
    "easy": 0.175,
    "medium": 0.5,
    "hard": 0.825,
}


def is_easy(score: float) -> bool:
    return score < EASY_THRESHOLD


def is_hard(score: float) -> bool:
    return score > HARD_THRESHOLD


def level_for_score(score: float) -> str:
    """スコアから難易度レベル名を導出する。"""

    if is_easy(score):
        return "easy"
    if is_hard(score):
        return "hard"
    return "medium"


def level_to_score(level: str) -> float:
    """難易度レベルの代表スコアを返す。未知のレベルは medium 扱い。"""

    return LEVEL_SCORES.get(str(level), LEVEL_SCORES["medium"])
