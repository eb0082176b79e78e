"""Phase handlers and the primitives they share."""

from .analyzer import AnalysisHandler
from .base import BaseAsyncHandler, record_best_effort
from .finalizer import FinalizationHandler, estimated_score
from .improver import ImprovementHandler, is_viable, select_best, select_methods
from .learner import PatternLearner
from .registries import GeneratorRegistry
from .resilience import RetryOutcome, call_with_timeout_retry

__all__ = [
    "AnalysisHandler",
    "BaseAsyncHandler",
    "FinalizationHandler",
    "GeneratorRegistry",
    "ImprovementHandler",
    "PatternLearner",
    "RetryOutcome",
    "call_with_timeout_retry",
    "estimated_score",
    "is_viable",
    "record_best_effort",
    "select_best",
    "select_methods",
]
