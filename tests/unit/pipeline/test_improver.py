"""Method selection, candidate selection and the improvement handler."""

import pytest

from prompt_orchestrator.config import OrchestratorConfig, default_agent_selection
from prompt_orchestrator.core.methods import Complexity, ContextFlag, ImprovementMethod
from prompt_orchestrator.core.types import (
    AnalysisMetadata,
    AnalyzedRequest,
    Context,
    Deferred,
    EvaluationResult,
    ImprovementCandidate,
    InitialRequest,
    Success,
)
from prompt_orchestrator.pipeline.improver import (
    SKIP_DEFERRED,
    SKIP_NO_METHODS,
    SKIP_SCORE_AT_TRIGGER,
    ImprovementHandler,
    is_viable,
    select_best,
    select_methods,
)
from tests.helpers import FakeGenerator, Slow

pytestmark = pytest.mark.unit

GO = ImprovementMethod.GENERAL_OPTIMIZER
FS = ImprovementMethod.FRONTEND_SPECIALIST
AE = ImprovementMethod.API_EXPERT
LC = ImprovementMethod.LLM_COORDINATOR


def _candidate(method, delta, text="better"):
    return ImprovementCandidate(text=text, method=method, score_improvement=delta)


def _analyzed(score, *, context=None, deferred=False, **config):
    cfg = OrchestratorConfig(**config)
    evaluation = (
        Deferred(reason="judge") if deferred else EvaluationResult(overall_score=score)
    )
    return AnalyzedRequest(
        initial=InitialRequest(text="write code", config=cfg),
        context=context or Context(),
        evaluation=evaluation,
        metadata=AnalysisMetadata(deferred=deferred),
    )


class TestSelectMethods:
    def test_default_entry_used_when_no_flag_is_active(self):
        assert select_methods(Context(), default_agent_selection(), 5) == (GO,)

    def test_flags_contribute_in_fixed_order_and_deduplicate(self):
        context = Context(
            is_react=True,
            has_frontend=True,
            is_api=True,
            has_backend=True,
            complexity=Complexity.HIGH,
        )

        methods = select_methods(context, default_agent_selection(), 5)

        assert methods == (GO, LC, FS, AE)

    def test_default_is_not_added_when_a_flag_contributed(self):
        table = {ContextFlag.API: (AE,), ContextFlag.DEFAULT: (GO,)}

        assert select_methods(Context(is_api=True), table, 5) == (AE,)

    def test_truncates_to_concurrency_limit(self):
        table = {ContextFlag.DEFAULT: (GO, LC, FS, AE)}

        assert select_methods(Context(), table, 2) == (GO, LC)

    def test_active_flag_without_entry_falls_back_to_default(self):
        table = {ContextFlag.DEFAULT: (GO,)}

        assert select_methods(Context(is_react=True), table, 5) == (GO,)

    def test_empty_table_selects_nothing(self):
        assert select_methods(Context(), {}, 5) == ()


class TestSelectBest:
    def test_largest_improvement_wins(self):
        winner = select_best([_candidate(GO, 5), _candidate(AE, 12)])
        assert winner is not None and winner.method is AE

    def test_tie_goes_to_first_in_selection_order(self):
        candidates = [_candidate(GO, 5), _candidate(LC, 12), _candidate(AE, 12)]

        winner = select_best(candidates)

        assert winner is not None and winner.method is LC

    def test_non_positive_and_empty_candidates_are_not_viable(self):
        candidates = [_candidate(GO, 0), _candidate(AE, -3), _candidate(LC, 8, text="  ")]

        assert select_best(candidates) is None
        assert not is_viable(None)

    def test_empty_set_has_no_winner(self):
        assert select_best([]) is None


class TestImprovementHandler:
    @pytest.mark.asyncio
    async def test_skips_at_or_above_trigger_without_generating(self):
        generator = FakeGenerator()
        handler = ImprovementHandler(generator)

        result = await handler.handle(_analyzed(70.0, improvement_trigger=70))

        assert isinstance(result, Success)
        assert result.value.candidate is None
        assert result.value.metadata.skip_reason == SKIP_SCORE_AT_TRIGGER
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_skips_deferred_evaluations(self):
        handler = ImprovementHandler(FakeGenerator())

        result = await handler.handle(_analyzed(0.0, deferred=True))

        assert result.value.metadata.skip_reason == SKIP_DEFERRED

    @pytest.mark.asyncio
    async def test_skips_when_no_method_is_selected(self):
        generator = FakeGenerator()
        handler = ImprovementHandler(generator)

        result = await handler.handle(_analyzed(10.0, agent_selection={}))

        assert result.value.metadata.skip_reason == SKIP_NO_METHODS
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_winner_and_metadata_for_mixed_outcomes(self):
        generator = FakeGenerator(
            {GO: 5.0, LC: 12.0, AE: 12.0, FS: [RuntimeError("x"), RuntimeError("y")]}
        )
        handler = ImprovementHandler(generator)
        request = _analyzed(40.0, agent_selection={"default": [GO, LC, AE, FS]})

        result = await handler.handle(request)

        improved = result.value
        meta = improved.metadata
        assert improved.candidate is not None and improved.candidate.method is LC
        assert meta.skipped is False
        assert meta.attempted == (GO, LC, AE, FS)
        assert meta.succeeded == 3
        assert meta.failed == (FS,)
        assert meta.retries == 1
        assert meta.winner is LC
        assert meta.winner_improvement == 12.0

    @pytest.mark.asyncio
    async def test_flaky_method_contributes_after_retry(self):
        generator = FakeGenerator({GO: [RuntimeError("once"), 7.0]})
        handler = ImprovementHandler(generator)

        result = await handler.handle(_analyzed(40.0))

        assert result.value.candidate is not None
        assert result.value.metadata.failed == ()
        assert generator.counts[GO] == 2

    @pytest.mark.asyncio
    async def test_timed_out_method_is_retried_once_without_budget(self):
        generator = FakeGenerator({GO: [Slow(1.0, 3.0), Slow(0.05, 9.0)]})
        handler = ImprovementHandler(generator)

        result = await handler.handle(_analyzed(40.0, timeout_ms=20))

        assert result.value.metadata.winner_improvement == 9.0
        assert generator.cancelled == [GO]

    @pytest.mark.asyncio
    async def test_all_failures_mean_no_improvement(self):
        generator = FakeGenerator(default=RuntimeError("down"))
        handler = ImprovementHandler(generator)

        result = await handler.handle(_analyzed(40.0, retry_on_failure=False))

        assert result.value.candidate is None
        assert result.value.metadata.failed == (GO,)
        assert generator.counts[GO] == 1

    @pytest.mark.asyncio
    async def test_non_candidate_return_counts_as_failure(self):
        class Broken:
            async def generate(self, text, context, method):
                return "not a candidate"

        result = await ImprovementHandler(Broken()).handle(_analyzed(40.0))

        assert result.value.candidate is None
        assert result.value.metadata.failed == (GO,)
