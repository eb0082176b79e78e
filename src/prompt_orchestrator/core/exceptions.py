"""Exception hierarchy for the prompt orchestration pipeline.

Phase handlers return ``Success | Failure`` values carrying these errors
instead of raising. The orchestrator converts failures into degraded
``OrchestrationResult`` values; none of these escape ``orchestrate``.
"""

from __future__ import annotations


class PromptOrchestratorError(Exception):
    """Base exception for all library errors."""


class ConfigurationError(PromptOrchestratorError):
    """Raised when configuration values cannot be resolved or validated."""


class AnalysisError(PromptOrchestratorError):
    """Raised when Phase 1 classification or scoring fails."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        """Initialize with the name of the failing analysis step, if known."""
        super().__init__(message)
        self.step = step


class CandidateError(PromptOrchestratorError):
    """Raised when a candidate generation call fails."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        attempts: int = 1,
    ) -> None:
        """Initialize with the method identifier and attempt count."""
        super().__init__(message)
        self.method = method
        self.attempts = attempts


class CandidateTimeoutError(CandidateError):
    """Raised when a candidate generation call exceeds its time budget."""


class UnknownMethodError(PromptOrchestratorError):
    """Raised when no generator is registered for an improvement method."""


class InvariantViolationError(PromptOrchestratorError):
    """Raised when a pipeline stage produces a value outside its contract."""

    def __init__(self, message: str, *, stage_name: str | None = None) -> None:
        """Initialize with the stage that violated the invariant."""
        super().__init__(message)
        self.stage_name = stage_name
