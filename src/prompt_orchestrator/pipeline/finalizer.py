"""Phase 3: settle the final text and score, record it and append history."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
import time
from typing import TYPE_CHECKING, Never

from prompt_orchestrator.core.types import (
    EvaluationResult,
    FinalizationMetadata,
    FinalizedRequest,
    HistoryEntry,
    ImprovedRequest,
    OutcomeRecord,
    Result,
    Success,
)
from prompt_orchestrator.pipeline.base import (
    BaseAsyncHandler,
    caller_cancelled,
    record_best_effort,
)

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import CriteriaScorer, Recorder
    from prompt_orchestrator.history import HistoryStore

log = logging.getLogger(__name__)

MAX_SCORE = 100.0


def estimated_score(original: float, improvement: float) -> float:
    """Original score plus the generator's estimate, clamped to [0, 100]."""
    return min(MAX_SCORE, max(0.0, original + improvement))


class FinalizationHandler(BaseAsyncHandler[ImprovedRequest, FinalizedRequest, Never]):
    """Re-scores a winning candidate and persists the outcome.

    The re-score is authoritative when it yields a numeric result; otherwise
    the generator's estimate is used. Recording is best-effort and the history
    append always happens.
    """

    def __init__(
        self,
        scorer: CriteriaScorer,
        recorder: Recorder,
        history: HistoryStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._scorer = scorer
        self._recorder = recorder
        self._history = history
        self._clock = clock

    async def handle(self, request: ImprovedRequest) -> Result[FinalizedRequest, Never]:
        analyzed = request.analyzed
        original_score = analyzed.original_score
        candidate = request.candidate

        rescored = False
        rescore_fallback = False
        if candidate is not None:
            final_text = candidate.text
            final_score, rescored = await self._rescore(candidate.text)
            if not rescored:
                rescore_fallback = True
                final_score = estimated_score(
                    original_score, candidate.score_improvement
                )
        else:
            final_text = analyzed.initial.text
            final_score = original_score

        metadata: dict[str, object] = {
            "original_score": original_score,
            "improved": candidate is not None,
        }
        if candidate is not None:
            metadata["method"] = candidate.method.value
        recorded = await record_best_effort(
            self._recorder,
            OutcomeRecord(
                kind="final", text=final_text, score=final_score, metadata=metadata
            ),
        )

        self._history.append(
            HistoryEntry(
                text=final_text,
                score=final_score,
                timestamp=self._clock(),
                context=analyzed.context,
            )
        )

        return Success(
            FinalizedRequest(
                improved=request,
                final_text=final_text,
                final_score=final_score,
                metadata=FinalizationMetadata(
                    rescored=rescored,
                    rescore_fallback=rescore_fallback,
                    recorded=recorded,
                ),
            )
        )

    async def _rescore(self, text: str) -> tuple[float, bool]:
        try:
            evaluation = await self._scorer.evaluate(text)
        except asyncio.CancelledError:
            if caller_cancelled():
                raise
            log.warning("Re-scoring the winning candidate was cancelled by the scorer")
            return 0.0, False
        except Exception as e:
            log.warning("Re-scoring the winning candidate failed: %s", e)
            return 0.0, False
        if isinstance(evaluation, EvaluationResult):
            return float(evaluation.overall_score), True
        log.info("Re-scoring returned %s; using estimate", type(evaluation).__name__)
        return 0.0, False
