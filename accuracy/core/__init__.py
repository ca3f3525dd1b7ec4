"""Accuracy core package: compute budgets, adaptive sampling, consensus and verification."""

from .budgets import ComputeBudget, ComputeBudgeter, UsageStats
from .consensus import ConsensusCheck, ConsensusChecker, check_consensus
from .errors import (
    AccuracyError,
    AccuracyTimeoutError,
    AggregationError,
    AllGeneratorsFailedError,
    BudgetExhaustedError,
    BudgetValidationError,
    ConfigError,
    ErrorReason,
    GeneratorCrashedError,
    NoCandidatesError,
    SelfConsistencyConfigError,
    UnknownLevelError,
    VerificationConfigError,
    VerifierFailedError,
)
from .models import (
    Candidate,
    DifficultyEstimate,
    DifficultyLevel,
    ScoredNode,
    SelfConsistencyResult,
    VerificationResult,
    VerifierConfig,
)
from .pipeline import AccuracyPipeline, PipelineResult
from .self_consistency import AdaptiveSelfConsistency
from .verification import VerificationRunner

__all__ = [
    "AccuracyError",
    "AccuracyPipeline",
    "AccuracyTimeoutError",
    "AdaptiveSelfConsistency",
    "AggregationError",
    "AllGeneratorsFailedError",
    "BudgetExhaustedError",
    "BudgetValidationError",
    "Candidate",
    "ComputeBudget",
    "ComputeBudgeter",
    "ConfigError",
    "ConsensusCheck",
    "ConsensusChecker",
    "DifficultyEstimate",
    "DifficultyLevel",
    "ErrorReason",
    "GeneratorCrashedError",
    "NoCandidatesError",
    "PipelineResult",
    "ScoredNode",
    "SelfConsistencyConfigError",
    "SelfConsistencyResult",
    "UnknownLevelError",
    "UsageStats",
    "VerificationConfigError",
    "VerificationResult",
    "VerificationRunner",
    "VerifierConfig",
    "VerifierFailedError",
    "check_consensus",
]
