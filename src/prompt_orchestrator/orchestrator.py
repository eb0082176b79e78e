"""The primary user-facing entry point for the orchestration pipeline.

An `Orchestrator` runs four phases per call:

1. Analyze: classify and score the text concurrently.
2. Improve: when the score is below the trigger, generate candidates in
   parallel under a timeout-and-retry bound and pick the best one.
3. Finalize: re-score the winner, record the outcome, append history.
4. Learn: detached, single-flight pattern extraction over history.

`orchestrate` never raises for collaborator failures; every call returns a
well-formed `OrchestrationResult`. Configuration is captured once at the
start of a run, so `update_config` only affects runs started afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import dataclasses
import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any

from prompt_orchestrator.collaborators import (
    FeaturePatternExtractor,
    HeuristicCriteriaScorer,
    KeywordContextClassifier,
    LoggingRecorder,
    TechniqueCandidateGenerator,
)
from prompt_orchestrator.config import (
    ConfigFileError,
    OrchestratorConfig,
    resolve_config,
)
from prompt_orchestrator.core.exceptions import (
    ConfigurationError,
    InvariantViolationError,
)
from prompt_orchestrator.core.types import (
    AnalysisMetadata,
    Failure,
    FinalizationMetadata,
    InitialRequest,
    OrchestrationResult,
    OutcomeRecord,
    PatternReport,
    PhaseMetadata,
    Result,
    Success,
)
from prompt_orchestrator.history import HistoryStore
from prompt_orchestrator.pipeline.analyzer import AnalysisHandler
from prompt_orchestrator.pipeline.base import caller_cancelled, record_best_effort
from prompt_orchestrator.pipeline.finalizer import FinalizationHandler
from prompt_orchestrator.pipeline.improver import ImprovementHandler
from prompt_orchestrator.pipeline.learner import PatternLearner
from prompt_orchestrator.pipeline.registries import GeneratorRegistry
from prompt_orchestrator.telemetry import TelemetryContext

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import (
        CandidateGenerator,
        ContextClassifier,
        CriteriaScorer,
        PatternExtractor,
        Recorder,
    )
    from prompt_orchestrator.core.methods import ImprovementMethod
    from prompt_orchestrator.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

type OrchestratorLogger = logging.Logger | logging.LoggerAdapter[logging.Logger]


@dataclasses.dataclass(frozen=True, slots=True)
class OrchestratorStatus:
    """Point-in-time view of an orchestrator's shared state."""

    history_size: int
    history_capacity: int
    high_scoring_count: int
    extraction_in_progress: bool
    extraction_runs: int
    config: OrchestratorConfig
    last_pattern_report: PatternReport | None


class Orchestrator:
    """Runs the analyze, improve, finalize and learn phases for each text.

    One instance may serve many concurrent `orchestrate` calls on the same
    event loop; they share the history store and the learning guard.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        *,
        classifier: ContextClassifier,
        scorer: CriteriaScorer,
        generator: CandidateGenerator,
        recorder: Recorder,
        extractor: PatternExtractor,
        history: HistoryStore | None = None,
        logger: OrchestratorLogger | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Frozen configuration. Defaults to `OrchestratorConfig()`;
                the environment is never consulted here.
            classifier: Phase 1 context classifier.
            scorer: Phase 1 scorer, also used to re-score the winner.
            generator: Candidate generator; a `GeneratorRegistry` routes
                methods to different generators.
            recorder: Best-effort outcome recorder.
            extractor: Background pattern extractor.
            history: Shared history store. Created from
                ``config.history_capacity`` when omitted.
            logger: Logger for run-level messages.
            telemetry: Telemetry context; no-op by default.
        """
        self._config = config if config is not None else OrchestratorConfig()
        self._history = (
            history if history is not None else HistoryStore(self._config.history_capacity)
        )
        self._log: OrchestratorLogger = logger if logger is not None else log
        self._tele = telemetry if telemetry is not None else TelemetryContext()
        self._recorder = recorder
        self._generator = generator

        self._analyzer = AnalysisHandler(classifier, scorer, recorder)
        self._improver = ImprovementHandler(generator)
        self._finalizer = FinalizationHandler(scorer, recorder, self._history)
        self._learner = PatternLearner(extractor, self._history, telemetry=self._tele)

        self._warn_unsupported_methods(self._config)

    # --- Public API ---

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def last_pattern_report(self) -> PatternReport | None:
        return self._learner.last_report

    async def orchestrate(self, text: str) -> OrchestrationResult:
        """Run the pipeline for ``text``.

        Returns:
            An `OrchestrationResult`. Failures are reported through
            ``success=False`` and ``error``.

        Raises:
            asyncio.CancelledError: If the calling task is cancelled.
        """
        config = self._config
        start = perf_counter()
        try:
            return await self._run(text, config, start)
        except asyncio.CancelledError:
            if caller_cancelled():
                raise
            self._log.error(
                "Orchestration was cancelled by a collaborator",
                extra={"failed_step": "internal"},
            )
            self._tele.count("orchestrator.internal_error")
            return await self._degraded(
                text,
                config,
                start,
                error="Internal error: cancelled by a collaborator",
                failed_step="internal",
            )
        except Exception as e:
            self._log.error(
                "Orchestration failed unexpectedly: %s",
                e,
                exc_info=True,
                extra={"failed_step": "internal"},
            )
            self._tele.count("orchestrator.internal_error")
            return await self._degraded(
                text, config, start, error=f"Internal error: {e}", failed_step="internal"
            )

    def status(self) -> OrchestratorStatus:
        config = self._config
        return OrchestratorStatus(
            history_size=len(self._history),
            history_capacity=self._history.capacity,
            high_scoring_count=len(self._history.high_scoring(config.high_quality)),
            extraction_in_progress=self._learner.in_progress,
            extraction_runs=self._learner.runs,
            config=config,
            last_pattern_report=self._learner.last_report,
        )

    def update_config(self, **overrides: Any) -> OrchestratorConfig:
        """Validate ``overrides`` and swap in a new frozen configuration.

        Runs already in flight keep the configuration they started with. The
        history store is shared, so a new ``history_capacity`` is the exception:
        the store is resized immediately and in-flight runs append into it at
        the new capacity.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid.
        """
        try:
            new_config = self._config.evolve(**overrides)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if new_config.history_capacity != self._history.capacity:
            self._history.resize(new_config.history_capacity)
        self._config = new_config
        self._warn_unsupported_methods(new_config)
        self._log.info(
            "Configuration updated: %s", ", ".join(sorted(overrides)) or "no changes"
        )
        return new_config

    def clear_history(self) -> None:
        self._history.clear()

    async def drain(self) -> None:
        """Wait for background pattern extraction started so far."""
        await self._learner.drain()

    # --- Pipeline ---

    async def _run(
        self, text: str, config: OrchestratorConfig, start: float
    ) -> OrchestrationResult:
        initial = InitialRequest(text=text, config=config)

        with self._tele("orchestrator.analyze"):
            analysis = await self._analyzer.handle(initial)
        self._check_result(analysis, "analyze")
        if isinstance(analysis, Failure):
            error = analysis.error
            self._log.warning(
                "Analysis failed; returning fallback result: %s",
                error,
                extra={"failed_step": getattr(error, "step", None)},
            )
            self._tele.count("orchestrator.fallback")
            return await self._degraded(
                text,
                config,
                start,
                error=str(error),
                failed_step=getattr(error, "step", None) or "analyze",
                analysis=AnalysisMetadata(
                    initial_record_attempted=config.record_initial,
                    failed_step=getattr(error, "step", None) or "analyze",
                ),
            )
        analyzed = analysis.value

        if analyzed.metadata.deferred:
            self._tele.count("orchestrator.deferred")
            self._log.info("Scoring deferred; skipping improvement")
            return OrchestrationResult(
                success=True,
                original_text=text,
                final_text=text,
                original_score=0.0,
                final_score=0.0,
                improved=False,
                context=analyzed.context,
                duration_ms=_elapsed_ms(start),
                phase_metadata=PhaseMetadata(analysis=analyzed.metadata),
                deferred=analyzed.evaluation,
            )

        with self._tele("orchestrator.improve"):
            improvement = await self._improver.handle(analyzed)
        improved = self._unwrap(improvement, "improve")
        if improved.metadata.failed:
            self._tele.count(
                "orchestrator.candidate_failures", len(improved.metadata.failed)
            )

        with self._tele("orchestrator.finalize"):
            finalization = await self._finalizer.handle(improved)
        finalized = self._unwrap(finalization, "finalize")

        self._schedule_learning(config)

        result = OrchestrationResult(
            success=True,
            original_text=text,
            final_text=finalized.final_text,
            original_score=analyzed.original_score,
            final_score=finalized.final_score,
            improved=improved.improved,
            context=analyzed.context,
            duration_ms=_elapsed_ms(start),
            phase_metadata=PhaseMetadata(
                analysis=analyzed.metadata,
                improvement=improved.metadata,
                finalization=finalized.metadata,
            ),
        )
        self._log.info(
            "Orchestration complete: %.2f -> %.2f (improved=%s)",
            result.original_score,
            result.final_score,
            result.improved,
            extra={
                "original_score": result.original_score,
                "final_score": result.final_score,
                "improved": result.improved,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def _schedule_learning(self, config: OrchestratorConfig) -> None:
        task = self._learner.schedule(config)
        if task is not None:
            self._tele.count("orchestrator.extraction_started")

    async def _degraded(
        self,
        text: str,
        config: OrchestratorConfig,
        start: float,
        *,
        error: str,
        failed_step: str,
        analysis: AnalysisMetadata | None = None,
    ) -> OrchestrationResult:
        original_text = text if isinstance(text, str) else str(text)
        recorded = False
        if config.fallback_recording:
            recorded = await record_best_effort(
                self._recorder,
                OutcomeRecord(
                    kind="fallback",
                    text=original_text,
                    metadata={"error": error, "failed_step": failed_step},
                ),
                logger=self._log,
            )
        return OrchestrationResult(
            success=False,
            original_text=original_text,
            final_text=original_text,
            original_score=0.0,
            final_score=0.0,
            improved=False,
            context=None,
            duration_ms=_elapsed_ms(start),
            phase_metadata=PhaseMetadata(
                analysis=analysis or AnalysisMetadata(failed_step=failed_step),
                finalization=FinalizationMetadata(recorded=recorded),
            ),
            error=error,
        )

    def _check_result(self, result: object, stage_name: str) -> None:
        if not isinstance(result, Success | Failure):
            self._tele.count("orchestrator.invariant_violation", stage=stage_name)
            raise InvariantViolationError(
                "Handler returned a non-Result value; expected Success|Failure.",
                stage_name=stage_name,
            )

    def _unwrap[T](self, result: Result[T, Exception], stage_name: str) -> T:
        self._check_result(result, stage_name)
        if isinstance(result, Failure):
            raise result.error
        return result.value

    def _warn_unsupported_methods(self, config: OrchestratorConfig) -> None:
        if not isinstance(self._generator, GeneratorRegistry):
            return
        configured: list[ImprovementMethod] = []
        for methods in config.agent_selection.values():
            configured.extend(methods)
        missing = self._generator.missing(dict.fromkeys(configured))
        if missing:
            self._log.warning(
                "No generator registered for: %s; those methods will fail",
                ", ".join(m.value for m in missing),
            )


def _elapsed_ms(start: float) -> float:
    return round((perf_counter() - start) * 1000.0, 3)


def create_orchestrator(
    config: OrchestratorConfig | None = None,
    *,
    classifier: ContextClassifier | None = None,
    scorer: CriteriaScorer | None = None,
    generator: CandidateGenerator
    | Mapping[ImprovementMethod | str, CandidateGenerator]
    | None = None,
    recorder: Recorder | None = None,
    extractor: PatternExtractor | None = None,
    history: HistoryStore | None = None,
    logger: OrchestratorLogger | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> Orchestrator:
    """Create an orchestrator, filling in reference collaborators.

    If no configuration is provided, it is resolved from the environment and
    the project file. This is the only place where that happens.

    Args:
        config: Optional frozen configuration.
        classifier: Defaults to `KeywordContextClassifier`.
        scorer: Defaults to `HeuristicCriteriaScorer`.
        generator: A generator, or a mapping of method to generator that is
            wrapped in a `GeneratorRegistry` with `TechniqueCandidateGenerator`
            as the fallback. Defaults to `TechniqueCandidateGenerator`.
        recorder: Defaults to `LoggingRecorder`.
        extractor: Defaults to `FeaturePatternExtractor`.
        history: Optional shared history store.
        logger: Optional logger for run-level messages.
        telemetry: Optional telemetry context.

    Raises:
        ConfigurationError: If configuration cannot be resolved.
    """
    if config is None:
        try:
            config = resolve_config()
        except (ValueError, ConfigFileError) as e:
            raise ConfigurationError(f"Failed to resolve configuration: {e}") from e

    if generator is None:
        generator = TechniqueCandidateGenerator()
    elif isinstance(generator, Mapping):
        generator = GeneratorRegistry(generator, fallback=TechniqueCandidateGenerator())

    return Orchestrator(
        config,
        classifier=classifier or KeywordContextClassifier(),
        scorer=scorer or HeuristicCriteriaScorer(),
        generator=generator,
        recorder=recorder or LoggingRecorder(),
        extractor=extractor or FeaturePatternExtractor(),
        history=history,
        logger=logger,
        telemetry=telemetry,
    )
