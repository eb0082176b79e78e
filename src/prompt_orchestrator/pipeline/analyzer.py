"""Phase 1: concurrent classification, scoring and initial recording."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from prompt_orchestrator.core.exceptions import AnalysisError
from prompt_orchestrator.core.types import (
    AnalysisMetadata,
    AnalyzedRequest,
    Context,
    Deferred,
    EvaluationResult,
    Failure,
    InitialRequest,
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
    from prompt_orchestrator.collaborators.base import (
        ContextClassifier,
        CriteriaScorer,
        Recorder,
    )

log = logging.getLogger(__name__)


class AnalysisHandler(BaseAsyncHandler[InitialRequest, AnalyzedRequest, AnalysisError]):
    """Runs the classifier, the scorer and the optional initial record together.

    The initial record never affects the outcome. A failing classifier or
    scorer turns the whole phase into a `Failure`; a `Deferred` evaluation is
    passed through for the orchestrator to short-circuit on.
    """

    def __init__(
        self,
        classifier: ContextClassifier,
        scorer: CriteriaScorer,
        recorder: Recorder,
    ) -> None:
        self._classifier = classifier
        self._scorer = scorer
        self._recorder = recorder

    async def handle(
        self, request: InitialRequest
    ) -> Result[AnalyzedRequest, AnalysisError]:
        text = request.text
        record_initial = request.config.record_initial

        calls = [self._classifier.classify(text), self._scorer.evaluate(text)]
        if record_initial:
            calls.append(
                record_best_effort(
                    self._recorder,
                    OutcomeRecord(
                        kind="initial", text=text, metadata={"length": len(text)}
                    ),
                )
            )
        results = await asyncio.gather(*calls, return_exceptions=True)

        for outcome in results:
            if isinstance(outcome, asyncio.CancelledError):
                # Only the caller's cancellation stops the phase
                if caller_cancelled():
                    raise outcome
            elif isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        context, evaluation = results[0], results[1]
        recorded = record_initial and results[2] is True

        if isinstance(context, BaseException):
            return Failure(
                AnalysisError(
                    f"Context classification failed: {_describe(context)}",
                    step="classify",
                )
            )
        if isinstance(evaluation, BaseException):
            return Failure(
                AnalysisError(f"Evaluation failed: {_describe(evaluation)}", step="evaluate")
            )
        if not isinstance(context, Context):
            return Failure(
                AnalysisError(
                    f"Classifier returned {type(context).__name__}, expected Context",
                    step="classify",
                )
            )
        if not isinstance(evaluation, EvaluationResult | Deferred):
            return Failure(
                AnalysisError(
                    f"Scorer returned {type(evaluation).__name__}, "
                    "expected EvaluationResult or Deferred",
                    step="evaluate",
                )
            )

        deferred = isinstance(evaluation, Deferred)
        if deferred:
            log.info("Scoring deferred: %s", evaluation.reason)

        return Success(
            AnalyzedRequest(
                initial=request,
                context=context,
                evaluation=evaluation,
                metadata=AnalysisMetadata(
                    initial_record_attempted=record_initial,
                    initial_record_succeeded=recorded,
                    deferred=deferred,
                ),
            )
        )


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
