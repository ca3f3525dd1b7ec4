from __future__ import annotations

import pytest

from accuracy.core.aggregation import (
    BestOfNAggregator,
    MajorityVoteAggregator,
    MaxScoreTieBreaker,
    resolve_aggregator,
    WeightedAggregator,
)
from accuracy.core.aggregation.builtin.majority_vote import extract_answer, normalize_answer
from accuracy.core.errors import AggregationError, ErrorReason
from accuracy.core.models import Candidate

from tests.helpers.fakes import candidates


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ('The result is "Paris" for sure', "Paris"),
        ("Let me think...\n\nThe answer is: 42", "42"),
        ("Work\nTherefore: 7\nextra", "7"),
        ("answer: 12", "12"),
        ("step one\nstep two\n\nfinal line\n", "final line"),
        ("", ""),
    ],
)
def test_extract_answer(content: str, expected: str) -> None:
    assert extract_answer(content) == expected


def test_normalize_answer_strips_case_and_trailing_punctuation() -> None:
    assert normalize_answer("  Forty-Two!!. ") == "forty-two"
    assert normalize_answer("(4)") == "(4"


def test_majority_vote_picks_most_common_answer() -> None:
    pool = candidates("Answer: 42", "The answer is: 42.", "Answer: 41")

    result = MajorityVoteAggregator().aggregate(pool)

    assert result.chosen.id == "c0"
    assert result.strategy == "majority_vote"
    assert result.metadata["confidence"] == pytest.approx(2 / 3)
    assert result.metadata["vote_distribution"] == {"42": 2, "41": 1}
    assert result.metadata["total_votes"] == 3
    assert result.metadata["winning_votes"] == 2


def test_majority_vote_tie_prefers_first_encountered_answer() -> None:
    pool = candidates("B", "A", "A", "B")

    result = MajorityVoteAggregator().aggregate(pool)

    assert result.chosen.id == "c0"
    assert result.tie_breaker_used == "first_encountered"


def test_majority_vote_single_candidate_has_full_confidence() -> None:
    result = MajorityVoteAggregator().aggregate(candidates("4"))

    assert result.metadata["confidence"] == 1.0
    assert result.tie_breaker_used is None


def test_majority_vote_requires_candidates() -> None:
    with pytest.raises(AggregationError) as exc:
        MajorityVoteAggregator().aggregate([])
    assert exc.value.reason is ErrorReason.NO_CANDIDATES


def test_majority_vote_within_bucket_tiebreaker() -> None:
    pool = [
        Candidate(id="low", content="x", score=0.1),
        Candidate(id="high", content="x", score=0.9),
    ]

    result = MajorityVoteAggregator().aggregate(pool, tiebreaker=MaxScoreTieBreaker())

    assert result.chosen.id == "high"


def test_best_of_n_selects_highest_score_and_prefers_fewer_tokens() -> None:
    pool = [
        Candidate(id="a", content="A", score=0.8, tokens_used=100),
        Candidate(id="b", content="B", score=0.8, tokens_used=50),
        Candidate(id="c", content="C", score=0.6),
        Candidate(id="d", content="D"),
    ]

    result = BestOfNAggregator().aggregate(pool)

    assert result.chosen.id == "b"
    assert result.metadata["confidence"] == 0.8
    assert result.metadata["score_distribution"] == {0.8: 2, 0.6: 1}
    assert result.metadata["scored_candidates"] == 3


def test_best_of_n_without_scores_fails() -> None:
    with pytest.raises(AggregationError) as exc:
        BestOfNAggregator().aggregate(candidates("A", "B"))
    assert exc.value.reason is ErrorReason.NO_SCORES


def test_best_of_n_single_candidate_confidence_defaults_to_one() -> None:
    result = BestOfNAggregator().aggregate(candidates("only"))
    assert result.metadata["confidence"] == 1.0


def test_weighted_aggregator_combines_strategy_selections() -> None:
    pool = [
        Candidate(id="popular", content="42", score=0.2),
        Candidate(id="popular2", content="42", score=0.3),
        Candidate(id="best", content="41", score=0.95),
    ]
    aggregator = WeightedAggregator([(MajorityVoteAggregator(), 3.0), (BestOfNAggregator(), 1.0)])

    result = aggregator.aggregate(pool)

    assert result.chosen.id == "popular"
    assert result.metadata["confidence"] == pytest.approx(0.75)
    assert result.metadata["weighted_scores"]["best"] == pytest.approx(0.25)
    assert result.metadata["strategy_weights"] == {"majority_vote": 0.75, "best_of_n": 0.25}


def test_weighted_aggregator_tolerates_abstaining_strategy() -> None:
    pool = candidates("A", "A", "B")

    result = WeightedAggregator().aggregate(pool)

    assert result.chosen.id == "c0"
    assert result.metadata["strategy_results"]["best_of_n"] is None
    assert result.metadata["confidence"] == pytest.approx(0.5)


def test_registry_resolves_aliases() -> None:
    assert isinstance(resolve_aggregator("vote"), MajorityVoteAggregator)
    assert isinstance(resolve_aggregator("best"), BestOfNAggregator)
    weighted = resolve_aggregator("weighted", strategies=[("majority", 1.0), ("best_of_n", 1.0)])
    assert isinstance(weighted, WeightedAggregator)
    with pytest.raises(ValueError, match="unknown aggregator"):
        resolve_aggregator("judge")
