"""Scripted collaborators for orchestrator tests.

Each fake records its calls so tests can assert on what the pipeline asked
for, and can be told to fail, stall or defer on demand.
"""

import asyncio
from collections import Counter
from collections.abc import Mapping, Sequence
import dataclasses
from typing import Any

from prompt_orchestrator.config import OrchestratorConfig
from prompt_orchestrator.core.methods import ImprovementMethod
from prompt_orchestrator.core.types import (
    Context,
    Deferred,
    EvaluationResult,
    HistoryEntry,
    ImprovementCandidate,
    OutcomeRecord,
    PatternReport,
)
from prompt_orchestrator.history import HistoryStore
from prompt_orchestrator.orchestrator import Orchestrator


@dataclasses.dataclass(frozen=True)
class Slow:
    """A generator step that sleeps before yielding ``delta``."""

    seconds: float
    delta: float = 10.0


@dataclasses.dataclass(frozen=True)
class InnerCancel:
    """A step that awaits an inner task which was already cancelled."""


type Step = float | Exception | Slow | InnerCancel


async def await_cancelled_task() -> None:
    """Raise CancelledError the way a collaborator with a cancelled subtask does."""
    inner = asyncio.ensure_future(asyncio.sleep(10))
    inner.cancel()
    await inner


class FakeClassifier:
    def __init__(
        self,
        context: Context | None = None,
        *,
        error: Exception | None = None,
        cancel_inside: bool = False,
    ) -> None:
        self.context = context if context is not None else Context()
        self.error = error
        self.cancel_inside = cancel_inside
        self.calls: list[str] = []

    async def classify(self, text: str) -> Context:
        self.calls.append(text)
        if self.cancel_inside:
            await await_cancelled_task()
        if self.error is not None:
            raise self.error
        return self.context


class FakeScorer:
    """Returns ``score`` for every text unless ``scores`` names it.

    Texts listed in ``errors`` raise the mapped exception.
    """

    def __init__(
        self,
        score: float = 50.0,
        *,
        scores: Mapping[str, float] | None = None,
        errors: Mapping[str, Exception] | None = None,
        error: Exception | None = None,
        deferred: bool = False,
    ) -> None:
        self.score = score
        self.scores = dict(scores or {})
        self.errors = dict(errors or {})
        self.error = error
        self.deferred = deferred
        self.calls: list[str] = []

    async def evaluate(self, text: str) -> EvaluationResult | Deferred:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if text in self.errors:
            raise self.errors[text]
        if self.deferred:
            return Deferred(reason="external_judge", request={"text": text})
        return EvaluationResult(overall_score=self.scores.get(text, self.score))


class FakeGenerator:
    """Candidate generator driven by a per-method script.

    Each call consumes the next step for its method; the last step repeats
    once the script is exhausted. Methods without a script yield ``default``.
    """

    def __init__(
        self,
        script: Mapping[ImprovementMethod, Step | Sequence[Step]] | None = None,
        *,
        default: Step = 10.0,
    ) -> None:
        self.script: dict[ImprovementMethod, tuple[Step, ...]] = {}
        for method, steps in (script or {}).items():
            if isinstance(steps, Sequence):
                self.script[method] = tuple(steps)
            else:
                self.script[method] = (steps,)
        self.default = default
        self.calls: list[ImprovementMethod] = []
        self.counts: Counter[ImprovementMethod] = Counter()
        self.cancelled: list[ImprovementMethod] = []

    @staticmethod
    def text_for(text: str, method: ImprovementMethod) -> str:
        return f"{text} [{method.value}]"

    async def generate(
        self, text: str, context: Context, method: ImprovementMethod
    ) -> ImprovementCandidate:
        self.calls.append(method)
        self.counts[method] += 1
        steps = self.script.get(method, (self.default,))
        step = steps[min(self.counts[method], len(steps)) - 1]

        if isinstance(step, Slow):
            try:
                await asyncio.sleep(step.seconds)
            except asyncio.CancelledError:
                self.cancelled.append(method)
                raise
            delta = step.delta
        elif isinstance(step, InnerCancel):
            await await_cancelled_task()
            raise AssertionError("unreachable")
        elif isinstance(step, Exception):
            raise step
        else:
            delta = step

        return ImprovementCandidate(
            text=self.text_for(text, method),
            method=method,
            score_improvement=float(delta),
        )


class MemoryRecorder:
    def __init__(self, *, fail_kinds: Sequence[str] = ()) -> None:
        self.fail_kinds = set(fail_kinds)
        self.entries: list[OutcomeRecord] = []

    async def record(self, entry: OutcomeRecord) -> None:
        if entry.kind in self.fail_kinds:
            raise RuntimeError(f"recorder rejected {entry.kind}")
        self.entries.append(entry)

    def kinds(self) -> list[str]:
        return [e.kind for e in self.entries]


class FakeExtractor:
    """Pattern extractor that can be held open with ``gate``."""

    def __init__(
        self,
        report: PatternReport | None = None,
        *,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.report = report
        self.error = error
        self.gate = gate
        self.calls: list[tuple[HistoryEntry, ...]] = []
        self.active = 0
        self.max_active = 0

    async def extract(self, entries: Sequence[HistoryEntry]) -> PatternReport:
        self.calls.append(tuple(entries))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            if self.report is not None:
                return self.report
            return PatternReport(entries_analyzed=len(entries))
        finally:
            self.active -= 1


def entry(score: float, text: str = "prompt", timestamp: float = 0.0) -> HistoryEntry:
    return HistoryEntry(text=text, score=score, timestamp=timestamp)


def make_orchestrator(
    *,
    classifier: Any = None,
    scorer: Any = None,
    generator: Any = None,
    recorder: Any = None,
    extractor: Any = None,
    history: HistoryStore | None = None,
    **config_overrides: Any,
) -> Orchestrator:
    """Build an orchestrator from fakes, overriding config fields by keyword."""
    return Orchestrator(
        OrchestratorConfig(**config_overrides),
        classifier=classifier if classifier is not None else FakeClassifier(),
        scorer=scorer if scorer is not None else FakeScorer(),
        generator=generator if generator is not None else FakeGenerator(),
        recorder=recorder if recorder is not None else MemoryRecorder(),
        extractor=extractor if extractor is not None else FakeExtractor(),
        history=history,
    )
