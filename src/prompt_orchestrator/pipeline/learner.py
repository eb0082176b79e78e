"""Phase 4: detached, single-flight pattern learning over history.

`schedule` is synchronous: the in-progress check and the flag update happen
without a suspension point in between, so concurrent orchestration runs on
one event loop can never start two extractions at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from prompt_orchestrator.core.types import HistoryEntry, PatternReport
from prompt_orchestrator.pipeline.base import caller_cancelled

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import PatternExtractor
    from prompt_orchestrator.config import OrchestratorConfig
    from prompt_orchestrator.history import HistoryStore
    from prompt_orchestrator.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class PatternLearner:
    """Triggers pattern extraction once enough high-scoring history exists."""

    def __init__(
        self,
        extractor: PatternExtractor,
        history: HistoryStore,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._extractor = extractor
        self._history = history
        self._telemetry = telemetry
        self._in_progress = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._last_report: PatternReport | None = None
        self._runs = 0

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def last_report(self) -> PatternReport | None:
        """Most recent successful extraction result, if any."""
        return self._last_report

    @property
    def runs(self) -> int:
        """Number of extractions started."""
        return self._runs

    def schedule(self, config: OrchestratorConfig) -> asyncio.Task[None] | None:
        """Start an extraction in a detached task when the trigger conditions hold.

        Returns:
            The started task, or None when nothing was started.
        """
        if self._in_progress:
            return None
        entries = self._history.high_scoring(config.high_quality)
        if len(entries) < config.pattern_extraction_min:
            return None

        self._in_progress = True
        self._runs += 1
        try:
            task = asyncio.get_running_loop().create_task(
                self._run(entries), name="prompt-orchestrator-pattern-extraction"
            )
        except BaseException:
            self._in_progress = False
            raise
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.debug("Pattern extraction scheduled over %d entries", len(entries))
        return task

    async def drain(self) -> None:
        """Wait for every extraction task started so far."""
        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def _run(self, entries: tuple[HistoryEntry, ...]) -> None:
        try:
            report = await self._extractor.extract(entries)
        except asyncio.CancelledError:
            if caller_cancelled():
                log.debug("Pattern extraction cancelled")
                raise
            log.warning("Pattern extractor was cancelled from within; no report")
            return
        except Exception as e:
            log.warning("Pattern extraction failed: %s", e, exc_info=True)
            return
        finally:
            self._in_progress = False

        if not isinstance(report, PatternReport):
            log.warning(
                "Pattern extractor returned %s; ignoring", type(report).__name__
            )
            return
        self._last_report = report
        if self._telemetry is not None:
            self._telemetry.gauge("learner.patterns", len(report.patterns))
        log.info(
            "Extracted %d pattern(s) from %d entries",
            len(report.patterns),
            report.entries_analyzed,
        )
