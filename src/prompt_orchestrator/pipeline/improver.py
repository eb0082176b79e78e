"""Phase 2: conditional, parallel candidate generation and selection.

Method selection and candidate selection are pure functions so that the
ordering rules can be tested without any I/O:

- methods come from the selection table in flag order, with the ``default``
  entry used only when no active flag contributed;
- duplicates keep their first position and the list is truncated to the
  configured concurrency limit;
- the winner is the candidate with the largest positive improvement, ties
  going to the method selected first.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
from typing import TYPE_CHECKING, Never

from prompt_orchestrator.core.methods import (
    SELECTION_ORDER,
    ContextFlag,
    ImprovementMethod,
)
from prompt_orchestrator.core.types import (
    AnalyzedRequest,
    Context,
    ImprovedRequest,
    ImprovementCandidate,
    ImprovementMetadata,
    Result,
    Success,
)
from prompt_orchestrator.pipeline.base import BaseAsyncHandler
from prompt_orchestrator.pipeline.resilience import (
    RetryOutcome,
    call_with_timeout_retry,
)

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import CandidateGenerator

log = logging.getLogger(__name__)

SKIP_SCORE_AT_TRIGGER = "score_at_or_above_trigger"
SKIP_NO_METHODS = "no_methods_selected"
SKIP_DEFERRED = "evaluation_deferred"


def select_methods(
    context: Context,
    table: Mapping[ContextFlag, Sequence[ImprovementMethod]],
    limit: int,
) -> tuple[ImprovementMethod, ...]:
    """Return the ordered, de-duplicated methods to attempt for ``context``."""
    active = set(context.active_flags())
    selected: list[ImprovementMethod] = []
    for flag in SELECTION_ORDER:
        if flag in active:
            selected.extend(table.get(flag, ()))
    if not selected:
        selected.extend(table.get(ContextFlag.DEFAULT, ()))

    unique = tuple(dict.fromkeys(selected))
    return unique[: max(limit, 0)]


def is_viable(candidate: object) -> bool:
    """A candidate counts only with non-empty text and a positive improvement."""
    return (
        isinstance(candidate, ImprovementCandidate)
        and bool(candidate.text.strip())
        and candidate.score_improvement > 0
    )


def select_best(
    candidates: Sequence[ImprovementCandidate],
) -> ImprovementCandidate | None:
    """Return the viable candidate with the largest improvement.

    ``candidates`` must be in selection order; the first of equal maxima wins.
    """
    best: ImprovementCandidate | None = None
    for candidate in candidates:
        if not is_viable(candidate):
            continue
        if best is None or candidate.score_improvement > best.score_improvement:
            best = candidate
    return best


class ImprovementHandler(BaseAsyncHandler[AnalyzedRequest, ImprovedRequest, Never]):
    """Fans candidate generation out across the selected methods.

    Every call is bounded by the timeout-and-retry combinator; failing methods
    are excluded, never fatal. This handler always succeeds.
    """

    def __init__(self, generator: CandidateGenerator) -> None:
        self._generator = generator

    async def handle(self, request: AnalyzedRequest) -> Result[ImprovedRequest, Never]:
        config = request.initial.config

        if request.metadata.deferred:
            return Success(self._skipped(request, SKIP_DEFERRED))

        if request.original_score >= config.improvement_trigger:
            log.debug(
                "Score %.2f at or above trigger %.2f; skipping improvement",
                request.original_score,
                config.improvement_trigger,
            )
            return Success(self._skipped(request, SKIP_SCORE_AT_TRIGGER))

        methods = select_methods(
            request.context, config.agent_selection, config.max_concurrent_agents
        )
        if not methods:
            return Success(self._skipped(request, SKIP_NO_METHODS))

        text = request.initial.text
        context = request.context
        outcomes: list[RetryOutcome[ImprovementCandidate]] = await asyncio.gather(
            *(
                call_with_timeout_retry(
                    lambda m=m: self._generator.generate(text, context, m),
                    timeout_s=config.timeout_seconds,
                    retry_on_failure=config.retry_on_failure,
                    label=f"generate[{m.value}]",
                    method=m.value,
                )
                for m in methods
            )
        )

        candidates: list[ImprovementCandidate] = []
        failed: list[ImprovementMethod] = []
        for method, outcome in zip(methods, outcomes, strict=True):
            if not outcome.ok:
                log.warning(
                    "Candidate generation failed for %s after %d attempt(s): %s",
                    method.value,
                    outcome.attempts,
                    outcome.result.error,
                )
                failed.append(method)
                continue
            value = outcome.result.value
            if not isinstance(value, ImprovementCandidate):
                log.warning(
                    "Generator for %s returned %s; ignoring",
                    method.value,
                    type(value).__name__,
                )
                failed.append(method)
                continue
            candidates.append(value)

        winner = select_best(candidates)
        metadata = ImprovementMetadata(
            skipped=False,
            attempted=methods,
            succeeded=len(candidates),
            failed=tuple(failed),
            retries=sum(1 for o in outcomes if o.retried),
            winner=winner.method if winner else None,
            winner_improvement=winner.score_improvement if winner else None,
        )
        return Success(
            ImprovedRequest(analyzed=request, candidate=winner, metadata=metadata)
        )

    @staticmethod
    def _skipped(request: AnalyzedRequest, reason: str) -> ImprovedRequest:
        return ImprovedRequest(
            analyzed=request,
            candidate=None,
            metadata=ImprovementMetadata(skipped=True, skip_reason=reason),
        )
