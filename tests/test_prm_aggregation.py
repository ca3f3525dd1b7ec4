from __future__ import annotations

import pytest

from accuracy.core import prm_aggregation as prm

SCORES = [0.8, 0.9, 0.7]


def test_weighted_average_of_later_weighted_steps() -> None:
    assert prm.weighted_average(SCORES, [0.2, 0.3, 0.5]) == pytest.approx(0.78)


def test_weighted_average_rejects_bad_weights() -> None:
    with pytest.raises(ValueError, match="same length"):
        prm.weighted_average(SCORES, [0.5, 0.5])
    with pytest.raises(ValueError, match="sum to 1.0"):
        prm.weighted_average(SCORES, [0.2, 0.2, 0.2])


def test_weighted_average_tolerates_rounding_in_weight_sum() -> None:
    assert prm.weighted_average([1.0, 1.0], [0.5, 0.5005]) == pytest.approx(1.0005)


def test_empty_inputs() -> None:
    assert prm.sum_scores([]) == 0
    assert prm.product_scores([]) == 1
    assert prm.min_score([]) is None
    assert prm.max_score([]) is None
    assert prm.average_score([]) is None
    assert prm.weighted_average([], []) is None
    assert prm.normalize_weights([]) == []
    assert prm.normalize_scores([], (0.0, 1.0)) == []
    assert prm.softmax([]) == []


def test_basic_combinators() -> None:
    assert prm.sum_scores(SCORES) == pytest.approx(2.4)
    assert prm.product_scores(SCORES) == pytest.approx(0.504)
    assert prm.min_score(SCORES) == 0.7
    assert prm.max_score(SCORES) == 0.9
    assert prm.average_score(SCORES) == pytest.approx(0.8)


def test_normalize_weights() -> None:
    assert prm.normalize_weights([2, 3, 5]) == pytest.approx([0.2, 0.3, 0.5])
    assert prm.normalize_weights([0, 0]) == [0.0]


def test_normalize_scores_maps_to_target_range() -> None:
    assert prm.normalize_scores([0.0, 5.0, 10.0], (0.0, 1.0)) == pytest.approx([0.0, 0.5, 1.0])
    assert prm.normalize_scores([0.3, 0.3, 0.3], (0.0, 1.0)) == [0.5, 0.5, 0.5]


def test_softmax_is_stable_and_sums_to_one() -> None:
    result = prm.softmax([1.0, 2.0, 3.0])
    assert result == pytest.approx([0.09003057, 0.24472847, 0.66524096])
    assert sum(prm.softmax([1000.0, 1001.0])) == pytest.approx(1.0)


def test_aggregate_dispatch() -> None:
    assert prm.aggregate(SCORES, "min") == 0.7
    assert prm.aggregate(SCORES, "product") == pytest.approx(0.504)
    assert prm.aggregate(SCORES, "weighted_average", weights=[0.2, 0.3, 0.5]) == pytest.approx(0.78)
    assert prm.aggregate(SCORES, "weighted_average") == pytest.approx(0.8)
    with pytest.raises(ValueError, match="unknown aggregation strategy"):
        prm.aggregate(SCORES, "median")
