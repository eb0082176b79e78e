"""Collaborator protocols and reference implementations."""

from .base import (
    CandidateGenerator,
    ContextClassifier,
    CriteriaScorer,
    PatternExtractor,
    Recorder,
)
from .context import KeywordContextClassifier
from .criteria import CRITERIA, Criterion, HeuristicCriteriaScorer
from .gemini import GeminiCandidateGenerator
from .patterns import FeaturePatternExtractor
from .recorders import JSONLinesRecorder, LoggingRecorder, NullRecorder
from .rewriter import METHOD_TECHNIQUES, TechniqueCandidateGenerator

__all__ = [
    "CRITERIA",
    "METHOD_TECHNIQUES",
    "CandidateGenerator",
    "ContextClassifier",
    "CriteriaScorer",
    "Criterion",
    "FeaturePatternExtractor",
    "GeminiCandidateGenerator",
    "HeuristicCriteriaScorer",
    "JSONLinesRecorder",
    "KeywordContextClassifier",
    "LoggingRecorder",
    "NullRecorder",
    "PatternExtractor",
    "Recorder",
    "TechniqueCandidateGenerator",
]
