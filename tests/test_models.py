from __future__ import annotations

import pytest

from accuracy.core.models import (
    Candidate,
    DifficultyEstimate,
    DifficultyLevel,
    ScoredNode,
    SelfConsistencyResult,
    VerificationResult,
    VerifierConfig,
)
from accuracy.core.verification import DeterministicVerifier


@pytest.mark.parametrize(
    ("score", "level"),
    [
        (0.0, DifficultyLevel.EASY),
        (0.34, DifficultyLevel.EASY),
        (0.35, DifficultyLevel.MEDIUM),
        (0.65, DifficultyLevel.MEDIUM),
        (0.66, DifficultyLevel.HARD),
        (1.0, DifficultyLevel.HARD),
    ],
)
def test_difficulty_level_boundaries(score: float, level: DifficultyLevel) -> None:
    assert DifficultyEstimate.from_score(score).level is level


def test_difficulty_estimate_validation_and_parsing() -> None:
    estimate = DifficultyEstimate(level="HARD", score=0.9, confidence=0.7)

    assert estimate.level is DifficultyLevel.HARD
    assert estimate.is_hard() and not estimate.is_easy()
    assert DifficultyEstimate.for_level("medium").score == 0.5
    with pytest.raises(ValueError):
        DifficultyEstimate(level="easy", score=1.2)
    with pytest.raises(ValueError):
        DifficultyEstimate(level="easy", score=True)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        DifficultyEstimate(level="easy", score=0.1, confidence=-0.1)
    with pytest.raises(ValueError):
        DifficultyEstimate(level="trivial", score=0.1)


def test_candidate_ids_are_unique() -> None:
    assert Candidate(content="a").id != Candidate(content="a").id


def test_verification_result_validation() -> None:
    with pytest.raises(ValueError):
        VerificationResult(score="high")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        VerificationResult(score=0.5, confidence=1.5)
    with pytest.raises(ValueError):
        VerificationResult(score=0.5, step_scores=[0.1])  # type: ignore[arg-type]


def test_verification_result_passed_threshold() -> None:
    assert VerificationResult(score=0.5).passed() is True
    assert VerificationResult(score=0.49).passed() is False
    assert VerificationResult(score=None).passed(0.0) is False
    assert VerificationResult(score=0.7).passed(0.8) is False


def test_merge_step_scores_prefers_later_values() -> None:
    original = VerificationResult(candidate_id="c", score=0.9, step_scores={"step_1": 0.5, "step_2": 0.6})

    merged = original.merge_step_scores({"step_2": 0.9, "step_3": 1.0})

    assert merged.step_scores == {"step_1": 0.5, "step_2": 0.9, "step_3": 1.0}
    assert original.step_scores == {"step_1": 0.5, "step_2": 0.6}


def test_verification_result_map_round_trip() -> None:
    original = VerificationResult(
        candidate_id="c1", score=0.8, confidence=0.9, reasoning="ok", step_scores={"step_1": 0.8}, metadata={"k": 1}
    )

    assert VerificationResult.from_map(original.to_map()) == original
    assert VerificationResult.from_map({"score": 0.1, "metadata": "junk"}).metadata == {}


def test_verifier_id_resolution() -> None:
    verifier = DeterministicVerifier(ground_truth="4")

    assert VerifierConfig(verifier, name="exact").verifier_id == "exact"
    assert VerifierConfig("deterministic").verifier_id == "deterministic"
    assert VerifierConfig(DeterministicVerifier).verifier_id == "DeterministicVerifier"
    assert VerifierConfig(verifier).verifier_id == "DeterministicVerifier"


def test_scored_nodes_order_by_score_only() -> None:
    low = ScoredNode(0.2, Candidate(content="b"))
    high = ScoredNode(0.9, Candidate(content="a"))

    assert sorted([high, low]) == [low, high]


def test_self_consistency_result_properties() -> None:
    result = SelfConsistencyResult(candidate=Candidate(content="4"), metadata={"actual_n": 3, "early_stopped": True})

    assert result.actual_n == 3
    assert result.early_stopped is True
    assert SelfConsistencyResult(candidate=Candidate()).actual_n == 0
