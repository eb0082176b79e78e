"""Core data types that flow through the orchestration pipeline.

This module defines the immutable data structures exchanged with collaborators
and the request states that each phase handler transforms into the next.
Every value is a frozen dataclass; mappings are wrapped in read-only views so
that a value cannot be altered after it has been handed to another phase.
"""

from __future__ import annotations

import dataclasses
from types import MappingProxyType
import typing

from .methods import SELECTION_ORDER, Complexity, ContextFlag, ImprovementMethod

if typing.TYPE_CHECKING:
    from prompt_orchestrator.config import OrchestratorConfig

# --- Minimal guard helpers ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None."""
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _is_tuple_of(value: object, typ: type | tuple[type, ...]) -> bool:
    return isinstance(value, tuple) and all(isinstance(v, typ) for v in value)


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def _is_score(value: object, upper: float) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and 0.0 <= value <= upper
    )


# --- Result type ---
# Handlers return Success|Failure so that failures are part of the data flow
# and the orchestrator can degrade without broad try/except blocks.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result in the pipeline."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failure in the pipeline, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Analysis values ---


@dataclasses.dataclass(frozen=True, slots=True)
class Context:
    """Structured summary of an input text used to pick improvement methods."""

    is_react: bool = False
    has_frontend: bool = False
    is_api: bool = False
    has_backend: bool = False
    complexity: Complexity = Complexity.LOW
    frameworks: tuple[str, ...] = ()
    project_type: str = "general"

    def __post_init__(self) -> None:
        """Validate Context invariants."""
        _require(
            condition=isinstance(self.complexity, Complexity),
            message=f"must be a Complexity, got {self.complexity!r}",
            field_name="complexity",
            exc=TypeError,
        )
        _require(
            condition=_is_tuple_of(self.frameworks, str),
            message="must be a tuple[str, ...]",
            field_name="frameworks",
            exc=TypeError,
        )

    def active_flags(self) -> tuple[ContextFlag, ...]:
        """Return the selection flags set on this context, in selection order."""
        active = {
            ContextFlag.COMPLEX: self.complexity is Complexity.HIGH,
            ContextFlag.REACT: self.is_react,
            ContextFlag.FRONTEND: self.has_frontend,
            ContextFlag.API: self.is_api,
            ContextFlag.BACKEND: self.has_backend,
        }
        return tuple(flag for flag in SELECTION_ORDER if active[flag])


@dataclasses.dataclass(frozen=True, slots=True)
class CriterionScore:
    """Score detail for a single evaluation criterion."""

    raw_score: float
    weight: float
    description: str = ""

    def __post_init__(self) -> None:
        """Validate score range and weight."""
        _require(
            condition=_is_score(self.raw_score, 1.0),
            message=f"must be numeric within [0.0, 1.0], got {self.raw_score}",
            field_name="raw_score",
        )
        _require(
            condition=isinstance(self.weight, int | float) and self.weight > 0,
            message=f"must be a positive number, got {self.weight}",
            field_name="weight",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Weighted overall score plus per-criterion detail."""

    overall_score: float
    criteria: typing.Mapping[str, CriterionScore] = dataclasses.field(
        default_factory=dict
    )
    recommendations: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate and freeze evaluation components."""
        _require(
            condition=_is_score(self.overall_score, 100.0),
            message=f"must be numeric within [0, 100], got {self.overall_score}",
            field_name="overall_score",
        )
        _require(
            condition=all(
                isinstance(v, CriterionScore) for v in self.criteria.values()
            ),
            message="values must be CriterionScore",
            field_name="criteria",
            exc=TypeError,
        )
        _require(
            condition=_is_tuple_of(self.recommendations, str),
            message="must be a tuple[str, ...]",
            field_name="recommendations",
            exc=TypeError,
        )
        object.__setattr__(self, "criteria", _freeze_mapping(self.criteria))


@dataclasses.dataclass(frozen=True, slots=True)
class Deferred:
    """A scoring outcome that must be resolved by an external delegate.

    The ``request`` payload is opaque to the orchestrator; it is passed back
    to the caller unchanged.
    """

    reason: str
    request: typing.Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze the delegation payload."""
        object.__setattr__(self, "request", _freeze_mapping(self.request))


type Evaluation = EvaluationResult | Deferred


@dataclasses.dataclass(frozen=True, slots=True)
class ImprovementCandidate:
    """A proposed improved version of the input text."""

    text: str
    method: ImprovementMethod
    score_improvement: float
    reasoning: str | None = None

    def __post_init__(self) -> None:
        """Validate candidate fields."""
        _require(
            condition=isinstance(self.text, str),
            message="must be a str",
            field_name="text",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.method, ImprovementMethod),
            message=f"must be an ImprovementMethod, got {self.method!r}",
            field_name="method",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.score_improvement, int | float),
            message="must be numeric",
            field_name="score_improvement",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One completed orchestration, as kept by the history store."""

    text: str
    score: float
    timestamp: float
    context: Context | None = None


# --- Collaborator payloads ---

type RecordKind = typing.Literal["initial", "final", "fallback"]


@dataclasses.dataclass(frozen=True, slots=True)
class OutcomeRecord:
    """A single best-effort write handed to a Recorder."""

    kind: RecordKind
    text: str
    score: float | None = None
    metadata: typing.Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate record kind and freeze metadata."""
        _require(
            condition=self.kind in ("initial", "final", "fallback"),
            message=f"must be one of ['initial','final','fallback'], got {self.kind!r}",
            field_name="kind",
        )
        object.__setattr__(self, "metadata", _freeze_mapping(self.metadata))


@dataclasses.dataclass(frozen=True, slots=True)
class Pattern:
    """A recurring feature observed across high-scoring texts."""

    name: str
    description: str
    frequency: float

    def __post_init__(self) -> None:
        """Validate frequency bounds."""
        _require(
            condition=_is_score(self.frequency, 1.0),
            message=f"must be within [0.0, 1.0], got {self.frequency}",
            field_name="frequency",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class PatternReport:
    """Output of a pattern extraction run."""

    patterns: tuple[Pattern, ...] = ()
    entries_analyzed: int = 0
    average_score: float = 0.0


# --- Phase metadata ---


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisMetadata:
    """What happened during Phase 1."""

    initial_record_attempted: bool = False
    initial_record_succeeded: bool = False
    deferred: bool = False
    failed_step: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ImprovementMetadata:
    """What happened during Phase 2."""

    skipped: bool = True
    skip_reason: str | None = None
    attempted: tuple[ImprovementMethod, ...] = ()
    succeeded: int = 0
    failed: tuple[ImprovementMethod, ...] = ()
    retries: int = 0
    winner: ImprovementMethod | None = None
    winner_improvement: float | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class FinalizationMetadata:
    """What happened during Phase 3."""

    rescored: bool = False
    rescore_fallback: bool = False
    recorded: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class PhaseMetadata:
    """Per-phase observability record attached to every result."""

    analysis: AnalysisMetadata = dataclasses.field(default_factory=AnalysisMetadata)
    improvement: ImprovementMetadata = dataclasses.field(
        default_factory=ImprovementMetadata
    )
    finalization: FinalizationMetadata = dataclasses.field(
        default_factory=FinalizationMetadata
    )


@dataclasses.dataclass(frozen=True, slots=True)
class OrchestrationResult:
    """The externally visible outcome of one orchestration run."""

    success: bool
    original_text: str
    final_text: str
    original_score: float
    final_score: float
    improved: bool
    context: Context | None
    duration_ms: float
    phase_metadata: PhaseMetadata = dataclasses.field(default_factory=PhaseMetadata)
    deferred: Deferred | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate score ranges."""
        _require(
            condition=_is_score(self.original_score, 100.0),
            message=f"must be within [0, 100], got {self.original_score}",
            field_name="original_score",
        )
        _require(
            condition=_is_score(self.final_score, 100.0),
            message=f"must be within [0, 100], got {self.final_score}",
            field_name="final_score",
        )

    @property
    def improvement(self) -> float:
        """Score delta between the final and the original text."""
        return self.final_score - self.original_score


# --- Request states ---
# Each phase handler receives one of these and produces the next.


@dataclasses.dataclass(frozen=True, slots=True)
class InitialRequest:
    """The state of a request before analysis."""

    text: str
    config: OrchestratorConfig

    def __post_init__(self) -> None:
        """Validate InitialRequest invariants."""
        _require(
            condition=isinstance(self.text, str),
            message="must be a str",
            field_name="text",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class AnalyzedRequest:
    """The state after Phase 1 produced a context and an evaluation."""

    initial: InitialRequest
    context: Context
    evaluation: Evaluation
    metadata: AnalysisMetadata = dataclasses.field(default_factory=AnalysisMetadata)

    @property
    def original_score(self) -> float:
        """Overall score of the original text; 0 while scoring is deferred."""
        if isinstance(self.evaluation, EvaluationResult):
            return float(self.evaluation.overall_score)
        return 0.0


@dataclasses.dataclass(frozen=True, slots=True)
class ImprovedRequest:
    """The state after Phase 2 decided on a winning candidate (or none)."""

    analyzed: AnalyzedRequest
    candidate: ImprovementCandidate | None
    metadata: ImprovementMetadata = dataclasses.field(
        default_factory=ImprovementMetadata
    )

    @property
    def improved(self) -> bool:
        """True when a candidate won selection."""
        return self.candidate is not None


@dataclasses.dataclass(frozen=True, slots=True)
class FinalizedRequest:
    """The state after Phase 3 settled the final text and score."""

    improved: ImprovedRequest
    final_text: str
    final_score: float
    metadata: FinalizationMetadata = dataclasses.field(
        default_factory=FinalizationMetadata
    )
