"""多数決集約ストラテジ。"""
from __future__ import annotations

from collections.abc import Sequence
import re

from .. import AggregationResult, TieBreaker
from ...errors import AggregationError, ErrorReason
from ...models import Candidate
from .tie_breakers import FirstTieBreaker

__all__ = ["MajorityVoteAggregator", "extract_answer", "normalize_answer"]

_QUOTED_RE = re.compile(r'"([^"]+)"')
_PREFIXES = ("Answer:", "Therefore:", "Thus:", "So:", "The answer is:", "Result:")
# 段落区切り → 改行 → 行頭 の順に探す
_PREFIX_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(anchor + re.escape(prefix) + r"[ \t]*", re.IGNORECASE)
    for anchor in (r"\n\n", r"\n", r"^")
    for prefix in _PREFIXES
)
_TRAILING_PUNCT_RE = re.compile(r"""[.,!?;:()\[\]{}"']+$""")


def _first_line_after(content: str, pattern: re.Pattern[str]) -> str | None:
    match = pattern.search(content)
    if match is None:
        return None
    answer = content[match.end():].split("\n", 1)[0].strip()
    return answer or None


def extract_answer(content: str | None) -> str:
    """候補本文から最終回答部分を取り出す。"""

    if not content:
        return ""
    quoted = _QUOTED_RE.search(content)
    if quoted is not None:
        return quoted.group(1).strip()
    for pattern in _PREFIX_PATTERNS:
        answer = _first_line_after(content, pattern)
        if answer is not None:
            return answer
    lines = [line for line in content.split("\n") if line.strip()]
    return lines[-1].strip() if lines else ""


def normalize_answer(answer: str | None) -> str:
    """小文字化・前後空白除去・末尾の句読点除去を行う。"""

    normalized = (answer or "").lower().strip()
    return _TRAILING_PUNCT_RE.sub("", normalized).strip()


class MajorityVoteAggregator:
    """正規化した回答で投票し、最多得票の回答を選ぶ。

    同票の場合は最初に現れた回答を、同じ回答の中では ``tiebreaker``
    (既定は先頭) で選んだ候補を返す。
    """

    name = "majority_vote"

    def answer_key(self, candidate: Candidate) -> str:
        return normalize_answer(extract_answer(candidate.content))

    def distribution(self, candidates: Sequence[Candidate]) -> dict[str, int]:
        votes: dict[str, int] = {}
        for candidate in candidates:
            key = self.answer_key(candidate)
            votes[key] = votes.get(key, 0) + 1
        return votes

    def aggregate(
        self, candidates: Sequence[Candidate], *, tiebreaker: TieBreaker | None = None
    ) -> AggregationResult:
        if not candidates:
            raise AggregationError("majority_vote: candidates must be non-empty", reason=ErrorReason.NO_CANDIDATES)

        buckets: dict[str, list[Candidate]] = {}
        for candidate in candidates:
            buckets.setdefault(self.answer_key(candidate), []).append(candidate)

        winner_key = ""
        max_count = -1
        for key, bucket in buckets.items():
            if len(bucket) > max_count:
                winner_key = key
                max_count = len(bucket)

        bucket = buckets[winner_key]
        breaker = tiebreaker or FirstTieBreaker()
        chosen = bucket[0] if len(bucket) == 1 else breaker.break_tie(bucket)
        tied = sum(1 for other in buckets.values() if len(other) == max_count) > 1
        total = len(candidates)
        metadata = {
            "confidence": max_count / total,
            "vote_distribution": {key: len(items) for key, items in buckets.items()},
            "total_votes": total,
            "winning_votes": max_count,
            "answer": winner_key,
        }
        return AggregationResult(
            chosen=chosen,
            candidates=list(candidates),
            strategy=self.name,
            reason=f"majority_vote({max_count}/{total})",
            tie_breaker_used="first_encountered" if tied else None,
            metadata=metadata,
        )
