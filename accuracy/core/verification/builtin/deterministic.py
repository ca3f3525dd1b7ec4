"""正解値との決定的な比較による検証器。"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
import re
from typing import Any

from ...aggregation.builtin.majority_vote import extract_answer
from ...errors import ErrorReason, VerificationConfigError
from ...models import Candidate, VerificationResult

__all__ = ["COMPARISON_TYPES", "DeterministicVerifier"]

COMPARISON_TYPES = frozenset({"exact", "numerical", "regex"})

_WHITESPACE_RE = re.compile(r"\s+")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _extract_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if match is not None:
            return float(match.group(0))
    return None


class DeterministicVerifier:
    """抽出した回答を ``ground_truth`` と比較し 1.0 / 0.0 を返す。確信度は常に 1.0。"""

    name = "deterministic"

    def __init__(
        self,
        *,
        ground_truth: Any,
        comparison_type: str = "exact",
        tolerance: float | None = None,
        case_sensitive: bool = False,
        normalize_whitespace: bool = True,
    ) -> None:
        if comparison_type not in COMPARISON_TYPES:
            raise VerificationConfigError(
                f"comparison_type must be one of {sorted(COMPARISON_TYPES)}: {comparison_type!r}",
                reason=ErrorReason.INVALID_VERIFIERS_CONFIG,
            )
        if comparison_type == "numerical":
            if tolerance is None:
                tolerance = 0.0
            if isinstance(tolerance, bool) or not isinstance(tolerance, int | float) or tolerance < 0:
                raise VerificationConfigError(
                    f"tolerance must be a non-negative number: {tolerance!r}",
                    reason=ErrorReason.INVALID_VERIFIERS_CONFIG,
                )
        if comparison_type == "regex":
            ground_truth = re.compile(ground_truth) if isinstance(ground_truth, str) else ground_truth
            if not isinstance(ground_truth, re.Pattern):
                raise VerificationConfigError(
                    "regex comparison requires a pattern ground truth",
                    reason=ErrorReason.INVALID_VERIFIERS_CONFIG,
                )
        self.ground_truth = ground_truth
        self.comparison_type = comparison_type
        self.tolerance = tolerance
        self.case_sensitive = case_sensitive
        self.normalize_whitespace = normalize_whitespace

    def _normalize(self, value: str) -> str:
        if self.normalize_whitespace:
            value = _WHITESPACE_RE.sub(" ", value).strip()
        return value

    def _compare(self, answer: str) -> float:
        if self.comparison_type == "numerical":
            got = _extract_number(answer)
            expected = _extract_number(self.ground_truth)
            if got is None or expected is None:
                return 0.0
            return 1.0 if abs(got - expected) <= float(self.tolerance or 0.0) else 0.0
        if self.comparison_type == "regex":
            return 1.0 if self.ground_truth.search(answer) else 0.0
        expected = self._normalize(str(self.ground_truth))
        got = self._normalize(answer)
        if not self.case_sensitive:
            expected = expected.lower()
            got = got.lower()
        return 1.0 if got == expected else 0.0

    def verify(self, candidate: Candidate, context: Mapping[str, Any] | None = None) -> VerificationResult:
        answer = extract_answer(candidate.content)
        score = self._compare(answer)
        if score == 1.0:
            reasoning = f"Match found using {self.comparison_type} comparison"
        else:
            reasoning = f"No match: expected {self.ground_truth!r}, got {answer!r}"
        return VerificationResult(
            candidate_id=candidate.id,
            score=score,
            confidence=1.0,
            reasoning=reasoning,
            metadata={"comparison_type": self.comparison_type, "answer": answer},
        )

    def verify_batch(
        self, candidates: Sequence[Candidate], context: Mapping[str, Any] | None = None
    ) -> list[VerificationResult]:
        return [self.verify(candidate, context) for candidate in candidates]
