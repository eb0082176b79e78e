"""Collaborator protocols.

The orchestrator only schedules, bounds and combines calls to these
capabilities. Any object with matching async methods can be injected; the
reference implementations in this package are replaceable.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from prompt_orchestrator.core.methods import ImprovementMethod
    from prompt_orchestrator.core.types import (
        Context,
        Evaluation,
        HistoryEntry,
        ImprovementCandidate,
        OutcomeRecord,
        PatternReport,
    )


@runtime_checkable
class ContextClassifier(Protocol):
    """Derives a `Context` from an input text."""

    async def classify(self, text: str) -> Context:
        """Return the context for ``text``; may raise on failure."""
        ...


@runtime_checkable
class CriteriaScorer(Protocol):
    """Scores a text against weighted criteria.

    Returns `Deferred` when scoring has to be completed by an external judge.
    """

    async def evaluate(self, text: str) -> Evaluation:
        """Return an `EvaluationResult` or `Deferred`; may raise on failure."""
        ...


@runtime_checkable
class CandidateGenerator(Protocol):
    """Produces an improved version of a text using one method."""

    async def generate(
        self, text: str, context: Context, method: ImprovementMethod
    ) -> ImprovementCandidate:
        """Return a candidate; may be slow, may raise."""
        ...


@runtime_checkable
class Recorder(Protocol):
    """Best-effort persistence of orchestration outcomes."""

    async def record(self, entry: OutcomeRecord) -> None:
        """Persist ``entry``; failures are logged and ignored by callers."""
        ...


@runtime_checkable
class PatternExtractor(Protocol):
    """Batch analysis over high-scoring history entries."""

    async def extract(self, entries: Sequence[HistoryEntry]) -> PatternReport:
        """Return the patterns found in ``entries``."""
        ...
