"""Core components for the prompt orchestration pipeline."""

import importlib.metadata
import logging

from prompt_orchestrator.config import (
    OrchestratorConfig,
    list_available_profiles,
    resolve_config,
)
from prompt_orchestrator.core.exceptions import (
    AnalysisError,
    CandidateError,
    CandidateTimeoutError,
    ConfigurationError,
    InvariantViolationError,
    PromptOrchestratorError,
    UnknownMethodError,
)
from prompt_orchestrator.core.methods import Complexity, ContextFlag, ImprovementMethod
from prompt_orchestrator.core.types import (
    Context,
    CriterionScore,
    Deferred,
    EvaluationResult,
    Failure,
    HistoryEntry,
    ImprovementCandidate,
    OrchestrationResult,
    OutcomeRecord,
    Pattern,
    PatternReport,
    PhaseMetadata,
    Result,
    Success,
)
from prompt_orchestrator.history import HistoryStore
from prompt_orchestrator.orchestrator import (
    Orchestrator,
    OrchestratorStatus,
    create_orchestrator,
)
from prompt_orchestrator.pipeline.registries import GeneratorRegistry
from prompt_orchestrator.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("prompt-orchestrator")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Orchestrator
    "Orchestrator",
    "OrchestratorStatus",
    "create_orchestrator",
    # Configuration
    "OrchestratorConfig",
    "resolve_config",
    "list_available_profiles",
    # Collaborator routing and shared state
    "GeneratorRegistry",
    "HistoryStore",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Data types
    "Complexity",
    "Context",
    "ContextFlag",
    "CriterionScore",
    "Deferred",
    "EvaluationResult",
    "HistoryEntry",
    "ImprovementCandidate",
    "ImprovementMethod",
    "OrchestrationResult",
    "OutcomeRecord",
    "Pattern",
    "PatternReport",
    "PhaseMetadata",
    "Result",
    "Success",
    "Failure",
    # Exceptions
    "PromptOrchestratorError",
    "AnalysisError",
    "CandidateError",
    "CandidateTimeoutError",
    "ConfigurationError",
    "InvariantViolationError",
    "UnknownMethodError",
    "__version__",
]
