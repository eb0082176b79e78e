"""Core data types, vocabularies and exceptions."""

from .exceptions import (
    AnalysisError,
    CandidateError,
    CandidateTimeoutError,
    ConfigurationError,
    InvariantViolationError,
    PromptOrchestratorError,
    UnknownMethodError,
)
from .methods import SELECTION_ORDER, Complexity, ContextFlag, ImprovementMethod
from .types import (
    AnalysisMetadata,
    AnalyzedRequest,
    Context,
    CriterionScore,
    Deferred,
    EvaluationResult,
    Failure,
    FinalizationMetadata,
    FinalizedRequest,
    HistoryEntry,
    ImprovedRequest,
    ImprovementCandidate,
    ImprovementMetadata,
    InitialRequest,
    OrchestrationResult,
    OutcomeRecord,
    Pattern,
    PatternReport,
    PhaseMetadata,
    Result,
    Success,
)

__all__ = [
    "SELECTION_ORDER",
    "AnalysisError",
    "AnalysisMetadata",
    "AnalyzedRequest",
    "CandidateError",
    "CandidateTimeoutError",
    "Complexity",
    "ConfigurationError",
    "Context",
    "ContextFlag",
    "CriterionScore",
    "Deferred",
    "EvaluationResult",
    "Failure",
    "FinalizationMetadata",
    "FinalizedRequest",
    "HistoryEntry",
    "ImprovedRequest",
    "ImprovementCandidate",
    "ImprovementMetadata",
    "ImprovementMethod",
    "InitialRequest",
    "InvariantViolationError",
    "OrchestrationResult",
    "OutcomeRecord",
    "Pattern",
    "PatternReport",
    "PhaseMetadata",
    "PromptOrchestratorError",
    "Result",
    "Success",
    "UnknownMethodError",
]
