from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from accuracy.core.budgets import ComputeBudget
from accuracy.core.errors import (
    AccuracyTimeoutError,
    AllGeneratorsFailedError,
    ErrorReason,
    GeneratorCrashedError,
    NoCandidatesError,
    SelfConsistencyConfigError,
)
from accuracy.core.models import Candidate, DifficultyEstimate, DifficultyLevel
from accuracy.core.self_consistency import (
    adjust_n,
    _RunState,
    AdaptiveSelfConsistency,
    initial_n_for,
    max_n_for,
)

from tests.helpers.fakes import BlockingGenerator, CrashingAggregator, RecordingLogger, ScriptedGenerator


class _FixedEstimator:
    def __init__(self, score: float) -> None:
        self.score = score
        self.queries: list[str] = []

    def estimate(self, query: str, context: Mapping[str, Any]) -> DifficultyEstimate:
        self.queries.append(query)
        return DifficultyEstimate.from_score(self.score)


class _MethodGenerator:
    def generate(self, query: str, context: Mapping[str, Any]) -> Candidate:
        return Candidate(content=f"{query}={context.get('answer')}")


def _sampler(**overrides: Any) -> AdaptiveSelfConsistency:
    options: dict[str, Any] = {
        "min_candidates": 3,
        "max_candidates": 5,
        "batch_size": 3,
        "early_stop_threshold": 0.8,
        "max_concurrency": 1,
    }
    options.update(overrides)
    return AdaptiveSelfConsistency(**options)


def test_unanimous_first_batch_stops_early() -> None:
    generator = ScriptedGenerator(["4"])

    result = _sampler().run("2+2?", generator=generator)

    assert result.early_stopped is True
    assert result.actual_n == 3
    assert result.candidate.content == "4"
    assert result.metadata["consensus"] == 1.0
    assert generator.calls == 3


def test_sampling_stops_at_max_n_without_consensus() -> None:
    generator = ScriptedGenerator(["1", "2", "3"])

    result = _sampler().run("q", generator=generator, difficulty="medium")

    assert result.early_stopped is False
    assert result.actual_n == 5
    assert result.metadata["max_n"] == 5
    assert result.metadata["consensus"] == pytest.approx(0.4)
    assert result.metadata["aggregation_metadata"]["vote_distribution"] == {"1": 2, "2": 2, "3": 1}
    assert result.candidate.content == "1"


def test_failed_generations_are_dropped() -> None:
    generator = ScriptedGenerator(["4", RuntimeError("flaky"), "4"])

    result = _sampler().run("q", generator=generator)

    assert result.early_stopped is True
    assert result.actual_n == 4
    assert generator.calls == 6


def test_non_candidate_values_count_as_failures() -> None:
    generator = ScriptedGenerator(["4"])
    sampler = _sampler()

    result = sampler.run("q", generator=lambda query, context: generator(query, context).content)

    assert result.actual_n == 3
    with pytest.raises(AllGeneratorsFailedError):
        sampler.run("q", generator=lambda query, context: 42)


def test_all_generations_failing_raises() -> None:
    with pytest.raises(AllGeneratorsFailedError) as exc:
        _sampler().run("q", generator=ScriptedGenerator([RuntimeError("down")]))

    assert exc.value.reason is ErrorReason.ALL_GENERATORS_FAILED
    assert len(exc.value.failures) == 3


def test_run_times_out_and_discards_partial_work() -> None:
    generator = BlockingGenerator()
    sampler = _sampler(timeout=1.0)
    try:
        with pytest.raises(AccuracyTimeoutError) as exc:
            sampler.run("q", generator=generator)
    finally:
        generator.release.set()

    assert exc.value.reason is ErrorReason.TIMEOUT


def test_unexpected_crash_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    sampler = _sampler()

    def explode(*args: Any, **kwargs: Any) -> list[Candidate]:
        raise KeyError("state")

    monkeypatch.setattr(sampler, "_generate_batch", explode)

    with pytest.raises(GeneratorCrashedError) as exc:
        sampler.run("q", generator=ScriptedGenerator(["4"]))
    assert exc.value.reason is ErrorReason.GENERATOR_CRASHED


def test_finishing_without_candidates_raises() -> None:
    state = _RunState(level=DifficultyLevel.MEDIUM, initial_n=5, max_n=10, candidates=[])

    with pytest.raises(NoCandidatesError) as exc:
        _sampler()._finish(state, early_stopped=False)

    assert exc.value.reason is ErrorReason.NO_CANDIDATES_TO_AGGREGATE


def test_failing_consensus_check_is_treated_as_no_consensus() -> None:
    result = _sampler(aggregator=CrashingAggregator()).run("q", generator=ScriptedGenerator(["4"]))

    assert result.early_stopped is False
    assert result.actual_n == 5
    assert result.metadata["aggregation_error"] is True
    assert result.metadata["consensus"] == 0.0
    assert result.candidate.content == "4"


@pytest.mark.parametrize("generator", [None, 42])
def test_generator_is_required(generator: object) -> None:
    with pytest.raises(SelfConsistencyConfigError) as exc:
        _sampler().run("q", generator=generator)
    assert exc.value.reason is ErrorReason.GENERATOR_REQUIRED


def test_generate_method_and_context_are_used() -> None:
    result = _sampler().run("x", generator=_MethodGenerator(), context={"answer": 7})

    assert result.candidate.content == "x=7"
    assert result.early_stopped is True


def test_difficulty_resolution_order() -> None:
    estimator = _FixedEstimator(0.9)
    sampler = _sampler(max_candidates=20, difficulty_estimator=estimator)

    estimated = sampler.run("hard one", generator=ScriptedGenerator(["4"]))
    explicit = sampler.run("easy one", generator=ScriptedGenerator(["4"]), difficulty=DifficultyLevel.EASY)
    fallback = _sampler().run("plain", generator=ScriptedGenerator(["4"]))

    assert estimated.metadata["difficulty_level"] == "hard"
    assert estimated.metadata["initial_n"] == 10
    assert estimated.metadata["max_n"] == 20
    assert explicit.metadata["difficulty_level"] == "easy"
    assert estimator.queries == ["hard one"]
    assert fallback.metadata["difficulty_level"] == "medium"


def test_stop_event_is_emitted() -> None:
    logger = RecordingLogger()

    _sampler(event_logger=logger).run("q", generator=ScriptedGenerator(["4"]))

    (record,) = logger.of_type("self_consistency_stop")
    assert record["actual_n"] == 3
    assert record["early_stopped"] is True


def test_for_budget_caps_candidates() -> None:
    sampler = AdaptiveSelfConsistency(min_candidates=3, max_candidates=20).for_budget(
        ComputeBudget(num_candidates=2)
    )

    assert (sampler.min_candidates, sampler.max_candidates) == (2, 2)
    assert sampler.run("q", generator=ScriptedGenerator(["4"])).actual_n == 2


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"min_candidates": 0}, ErrorReason.MIN_CANDIDATES_MUST_BE_POSITIVE),
        ({"max_candidates": -1}, ErrorReason.MAX_CANDIDATES_MUST_BE_POSITIVE),
        ({"batch_size": 0}, ErrorReason.BATCH_SIZE_MUST_BE_POSITIVE),
        ({"max_concurrency": 0}, ErrorReason.MAX_CONCURRENCY_MUST_BE_POSITIVE),
        ({"early_stop_threshold": 1.5}, ErrorReason.INVALID_THRESHOLD),
        ({"min_candidates": 6}, ErrorReason.MIN_CANDIDATES_MUST_BE_LESS_THAN_MAX),
        ({"aggregator": "judge"}, ErrorReason.AGGREGATOR_MUST_IMPLEMENT_AGGREGATE),
        ({"aggregator": object()}, ErrorReason.AGGREGATOR_MUST_IMPLEMENT_AGGREGATE),
        ({"timeout": 0.5}, ErrorReason.INVALID_TIMEOUT),
        ({"timeout": 301}, ErrorReason.INVALID_TIMEOUT),
    ],
)
def test_configuration_validation(overrides: dict[str, Any], reason: ErrorReason) -> None:
    with pytest.raises(SelfConsistencyConfigError) as exc:
        _sampler(**overrides)
    assert exc.value.reason is reason


def test_run_timeout_override_is_validated() -> None:
    with pytest.raises(SelfConsistencyConfigError) as exc:
        _sampler().run("q", generator=ScriptedGenerator(["4"]), timeout=0)
    assert exc.value.reason is ErrorReason.INVALID_TIMEOUT


@pytest.mark.parametrize("level", list(DifficultyLevel))
@pytest.mark.parametrize(("min_candidates", "max_candidates"), [(1, 1), (1, 20), (3, 5), (7, 8), (12, 40)])
def test_initial_n_never_exceeds_max_n(level: DifficultyLevel, min_candidates: int, max_candidates: int) -> None:
    initial = initial_n_for(level, min_candidates=min_candidates, max_candidates=max_candidates)
    ceiling = max_n_for(level, min_candidates=min_candidates, max_candidates=max_candidates)

    assert min_candidates <= initial <= ceiling <= max_candidates


def test_n_lookup_defaults() -> None:
    bounds = {"min_candidates": 1, "max_candidates": 100}

    assert [initial_n_for(level, **bounds) for level in ("easy", "medium", "hard")] == [3, 5, 10]
    assert [max_n_for(level, **bounds) for level in ("easy", "medium", "hard")] == [5, 10, 20]


def test_adjust_n() -> None:
    assert adjust_n("easy", 0, max_n=5, batch_size=3) == 3
    assert adjust_n("easy", 3, max_n=5, batch_size=3) == 2
    assert adjust_n("easy", 5, max_n=5, batch_size=3) == 0
    assert adjust_n("easy", 6, max_n=5, batch_size=3) == 0
