"""Normalized exception hierarchy for the accuracy core."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any


class ErrorReason(str, Enum):
    """Enumerates structured failure reasons."""

    UNKNOWN = "unknown"
    INVALID_NUM_CANDIDATES = "invalid_num_candidates"
    INVALID_MAX_REFINEMENTS = "invalid_max_refinements"
    INVALID_SEARCH_ITERATIONS = "invalid_search_iterations"
    INVALID_PRM_THRESHOLD = "invalid_prm_threshold"
    INVALID_BUDGET = "invalid_budget"
    INVALID_GLOBAL_LIMIT = "invalid_global_limit"
    INVALID_COST = "invalid_cost"
    UNKNOWN_LEVEL = "unknown_level"
    BUDGET_EXHAUSTED = "budget_exhausted"
    MIN_CANDIDATES_MUST_BE_POSITIVE = "min_candidates_must_be_positive"
    MAX_CANDIDATES_MUST_BE_POSITIVE = "max_candidates_must_be_positive"
    BATCH_SIZE_MUST_BE_POSITIVE = "batch_size_must_be_positive"
    MAX_CONCURRENCY_MUST_BE_POSITIVE = "max_concurrency_must_be_positive"
    INVALID_THRESHOLD = "invalid_threshold"
    NO_THRESHOLD = "no_threshold"
    MIN_CANDIDATES_MUST_BE_LESS_THAN_MAX = "min_candidates_must_be_less_than_max"
    AGGREGATOR_MUST_IMPLEMENT_AGGREGATE = "aggregator_must_implement_aggregate"
    INVALID_TIMEOUT = "invalid_timeout"
    GENERATOR_REQUIRED = "generator_required"
    INVALID_VERIFIERS_CONFIG = "invalid_verifiers_config"
    INVALID_AGGREGATION_STRATEGY = "invalid_aggregation_strategy"
    INVALID_ERROR_STRATEGY = "invalid_error_strategy"
    TIMEOUT = "timeout"
    ALL_GENERATORS_FAILED = "all_generators_failed"
    NO_CANDIDATES = "no_candidates"
    NO_CANDIDATES_TO_AGGREGATE = "no_candidates_to_aggregate"
    NO_SCORES = "no_scores"
    GENERATOR_CRASHED = "generator_crashed"
    VERIFIER_FAILED = "verifier_failed"
    AGGREGATION_FAILED = "aggregation_failed"


def _coerce_reason(reason: ErrorReason | str | None, default: ErrorReason) -> ErrorReason:
    if reason is None:
        return default
    if isinstance(reason, ErrorReason):
        return reason
    try:
        return ErrorReason(reason)
    except ValueError:
        return ErrorReason.UNKNOWN


class AccuracyError(Exception):
    """Base class for accuracy-core errors."""

    default_reason: ErrorReason = ErrorReason.UNKNOWN

    def __init__(self, message: str = "", *, reason: ErrorReason | str | None = None) -> None:
        self.reason = _coerce_reason(reason, self.default_reason)
        self._message = message or self.reason.value
        super().__init__(self._message)

    def __str__(self) -> str:
        return self._message


class RetryableError(AccuracyError):
    """Base class for errors where retrying later may succeed."""


class FatalError(AccuracyError):
    """Base class for unrecoverable errors."""


class ConfigError(FatalError):
    """Raised when configuration is invalid."""


class BudgetValidationError(ConfigError):
    """Raised when a compute budget or budgeter is malformed."""

    default_reason = ErrorReason.INVALID_BUDGET


class SelfConsistencyConfigError(ConfigError):
    """Raised when adaptive self-consistency options are invalid."""


class VerificationConfigError(ConfigError):
    """Raised when a verification runner is misconfigured."""

    default_reason = ErrorReason.INVALID_VERIFIERS_CONFIG


class ConsensusConfigError(ConfigError):
    """Raised when a consensus check receives invalid inputs."""

    default_reason = ErrorReason.INVALID_THRESHOLD


class UnknownLevelError(FatalError):
    """Raised when a difficulty level has no preset or custom allocation."""

    default_reason = ErrorReason.UNKNOWN_LEVEL

    def __init__(self, level: object) -> None:
        super().__init__(f"unknown difficulty level: {level!r}")
        self.level = level


class BudgetExhaustedError(RetryableError):
    """Raised when an allocation would exceed the global compute limit."""

    default_reason = ErrorReason.BUDGET_EXHAUSTED

    def __init__(self, message: str = "", *, requested: float = 0.0, remaining: float = 0.0) -> None:
        super().__init__(message)
        self.requested = requested
        self.remaining = remaining


class AccuracyTimeoutError(RetryableError):
    """Raised when a deadline-bounded operation runs out of time."""

    default_reason = ErrorReason.TIMEOUT


class AllGeneratorsFailedError(FatalError):
    """Raised when every generation in a batch failed."""

    default_reason = ErrorReason.ALL_GENERATORS_FAILED

    def __init__(self, message: str = "", *, failures: Iterable[BaseException] | None = None) -> None:
        super().__init__(message)
        self.failures = list(failures) if failures is not None else []


class NoCandidatesError(FatalError):
    """Raised when an operation requires at least one candidate."""

    default_reason = ErrorReason.NO_CANDIDATES


class GeneratorCrashedError(FatalError):
    """Raised when the sampling loop terminates with an unexpected exception."""

    default_reason = ErrorReason.GENERATOR_CRASHED


class AggregationError(FatalError):
    """Raised when an aggregator cannot select a candidate."""

    default_reason = ErrorReason.AGGREGATION_FAILED


class VerifierFailedError(FatalError):
    """Raised under the ``halt`` policy when a verifier fails."""

    default_reason = ErrorReason.VERIFIER_FAILED

    def __init__(self, verifier_id: str, cause: Any) -> None:
        super().__init__(f"verifier {verifier_id} failed: {cause}")
        self.verifier_id = verifier_id
        self.cause = cause


__all__ = [
    "AccuracyError",
    "AccuracyTimeoutError",
    "AggregationError",
    "AllGeneratorsFailedError",
    "BudgetExhaustedError",
    "BudgetValidationError",
    "ConfigError",
    "ConsensusConfigError",
    "ErrorReason",
    "FatalError",
    "GeneratorCrashedError",
    "NoCandidatesError",
    "RetryableError",
    "SelfConsistencyConfigError",
    "UnknownLevelError",
    "VerificationConfigError",
    "VerifierFailedError",
]
