"""組み込みタイブレーカー。"""
from __future__ import annotations

from collections.abc import Sequence

from ...models import Candidate

__all__ = ["FirstTieBreaker", "MaxScoreTieBreaker"]


def _score_key(candidate: Candidate) -> float:
    return float("-inf") if candidate.score is None else float(candidate.score)


class FirstTieBreaker:
    name = "stable_order"

    def break_tie(self, candidates: Sequence[Candidate]) -> Candidate:
        if not candidates:
            raise ValueError("TieBreaker: candidates must be non-empty")
        return candidates[0]


class MaxScoreTieBreaker:
    name = "max_score"

    def break_tie(self, candidates: Sequence[Candidate]) -> Candidate:
        if not candidates:
            raise ValueError("TieBreaker: candidates must be non-empty")
        if any(c.score is not None for c in candidates):
            # 同点なら先に現れた候補
            _, best = max(enumerate(candidates), key=lambda pair: (_score_key(pair[1]), -pair[0]))
            return best
        return FirstTieBreaker().break_tie(candidates)
