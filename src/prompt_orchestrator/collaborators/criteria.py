"""Rule-based scoring against ten weighted prompt-quality criteria.

Each criterion starts from a base value and gains fixed increments when its
signals match; raw scores are capped at 1.0. The overall score is the
weighted mean scaled to 0-100.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import logging
import re

from prompt_orchestrator.core.types import (
    CriterionScore,
    Deferred,
    Evaluation,
    EvaluationResult,
)

log = logging.getLogger(__name__)

SMALL = 0.1
MEDIUM = 0.2
LARGE = 0.3
EXTRA_LARGE = 0.4
MAX_RAW_SCORE = 1.0

# Criteria scoring below this raw value get a recommendation.
NEEDS_IMPROVEMENT_BELOW = 0.5

OPTIMAL_LENGTH = (100, 2000)
MIN_TECH_TERMS = 3

_REQUIREMENT_WORDS = re.compile(r"MUST|REQUIRED")
_SPECIFICITY_WORDS = re.compile(r"specifically|exactly")
_MULTIPLE_QUESTIONS = re.compile(r"\?{2,}")
_XML_TAGS = re.compile(r"<\w+>.*</\w+>", re.DOTALL)
_MARKDOWN_HEADERS = re.compile(r"#{1,3}\s+.+", re.MULTILINE)
_NUMBERED_LISTS = re.compile(r"^\d+\.\s+.+", re.MULTILINE)
_BULLET_POINTS = re.compile(r"^[-*]\s+.+", re.MULTILINE)
_EXAMPLE_INDICATORS = re.compile(r"<example>|Example:|For example|e\.g\.", re.IGNORECASE)
_THINKING = re.compile(r"<thinking>|Let me think|step by step", re.IGNORECASE)
_SEQUENTIAL = re.compile(r"First,.*Then,.*Finally,", re.IGNORECASE | re.DOTALL)
_REASONING = re.compile(r"reasoning|approach|consider", re.IGNORECASE)
_TECH_TERMS = re.compile(
    r"React|FastAPI|TypeScript|Python|API|component|endpoint|database", re.IGNORECASE
)
_VERSION = re.compile(r"version|v\d+|\d+\.\d+", re.IGNORECASE)
_FRAMEWORK_WORDS = re.compile(r"framework|library|package", re.IGNORECASE)
_ERROR_WORDS = re.compile(r"error|exception|failure|edge case", re.IGNORECASE)
_HANDLING_WORDS = re.compile(r"try|catch|handle|recover", re.IGNORECASE)
_VALIDATION_WORDS = re.compile(r"validation|sanitize|verify", re.IGNORECASE)
_PERFORMANCE_WORDS = re.compile(r"performance|optimize|efficient|fast", re.IGNORECASE)
_OPTIMIZATION = re.compile(r"cache|lazy|async|concurrent", re.IGNORECASE)
_TEST_WORDS = re.compile(r"test|testing|unit test|integration", re.IGNORECASE)
_TEST_CONCEPTS = re.compile(r"coverage|assertion|mock", re.IGNORECASE)
_FORMAT_WORDS = re.compile(r"format|structure|output|return", re.IGNORECASE)
_FORMAT_TYPES = re.compile(r"JSON|XML|markdown|code", re.IGNORECASE)
_FORMAT_EXAMPLES = re.compile(r"<output>|```")
_DEPLOYMENT_WORDS = re.compile(r"deploy|production|environment|docker", re.IGNORECASE)
_SECURITY_WORDS = re.compile(r"security|authentication|authorization", re.IGNORECASE)


def _signals(base: float, text: str, *checks: tuple[re.Pattern[str], float]) -> float:
    score = base
    for pattern, increment in checks:
        if pattern.search(text):
            score += increment
    return min(score, MAX_RAW_SCORE)


def score_clarity(text: str) -> float:
    score = 0.5
    if _REQUIREMENT_WORDS.search(text):
        score += MEDIUM
    if _SPECIFICITY_WORDS.search(text):
        score += SMALL
    if OPTIMAL_LENGTH[0] < len(text) < OPTIMAL_LENGTH[1]:
        score += SMALL
    if not _MULTIPLE_QUESTIONS.search(text):
        score += SMALL
    return min(score, MAX_RAW_SCORE)


def score_structure(text: str) -> float:
    return _signals(
        0.3,
        text,
        (_XML_TAGS, LARGE),
        (_MARKDOWN_HEADERS, MEDIUM),
        (_NUMBERED_LISTS, SMALL),
        (_BULLET_POINTS, SMALL),
    )


def score_examples(text: str) -> float:
    count = len(_EXAMPLE_INDICATORS.findall(text))
    if count == 0:
        return 0.2
    if count == 1:
        return 0.6
    if count <= 3:
        return 1.0
    return 0.8


def score_chain_of_thought(text: str) -> float:
    return _signals(
        0.2, text, (_THINKING, EXTRA_LARGE), (_SEQUENTIAL, MEDIUM), (_REASONING, MEDIUM)
    )


def score_tech_specificity(text: str) -> float:
    score = 0.3
    if len(_TECH_TERMS.findall(text)) > MIN_TECH_TERMS:
        score += EXTRA_LARGE
    if _VERSION.search(text):
        score += SMALL
    if _FRAMEWORK_WORDS.search(text):
        score += MEDIUM
    return min(score, MAX_RAW_SCORE)


def score_error_handling(text: str) -> float:
    return _signals(
        0.2,
        text,
        (_ERROR_WORDS, EXTRA_LARGE),
        (_HANDLING_WORDS, MEDIUM),
        (_VALIDATION_WORDS, MEDIUM),
    )


def score_performance(text: str) -> float:
    return _signals(0.5, text, (_PERFORMANCE_WORDS, LARGE), (_OPTIMIZATION, MEDIUM))


def score_testing(text: str) -> float:
    return _signals(0.3, text, (_TEST_WORDS, EXTRA_LARGE), (_TEST_CONCEPTS, LARGE))


def score_output_format(text: str) -> float:
    return _signals(
        0.4,
        text,
        (_FORMAT_WORDS, LARGE),
        (_FORMAT_TYPES, MEDIUM),
        (_FORMAT_EXAMPLES, SMALL),
    )


def score_deployment(text: str) -> float:
    return _signals(0.5, text, (_DEPLOYMENT_WORDS, LARGE), (_SECURITY_WORDS, MEDIUM))


@dataclasses.dataclass(frozen=True, slots=True)
class Criterion:
    """A named, weighted scoring rule with its improvement advice."""

    name: str
    weight: float
    description: str
    recommendation: str
    scorer: Callable[[str], float]


CRITERIA: tuple[Criterion, ...] = (
    Criterion(
        "clarity",
        1.2,
        "How clear and unambiguous the prompt is",
        'Add explicit requirements using "MUST", "SHOULD", and "MAY". '
        "Be specific about expected behavior.",
        score_clarity,
    ),
    Criterion(
        "structure",
        1.1,
        "Organization and logical flow of the prompt",
        "Use XML tags or markdown sections to organize your prompt.",
        score_structure,
    ),
    Criterion(
        "examples",
        1.0,
        "Quality and relevance of provided examples",
        "Include 2-3 examples with input, reasoning, and expected output.",
        score_examples,
    ),
    Criterion(
        "chain_of_thought",
        1.1,
        "Step-by-step reasoning and thinking process",
        'Add a <thinking> section or "step by step" guidance to encourage reasoning.',
        score_chain_of_thought,
    ),
    Criterion(
        "tech_specificity",
        1.2,
        "Technical details and specific requirements",
        "Specify exact frameworks, versions, and technical requirements.",
        score_tech_specificity,
    ),
    Criterion(
        "error_handling",
        1.0,
        "Consideration of edge cases and error scenarios",
        "Explicitly mention error scenarios and how they should be handled.",
        score_error_handling,
    ),
    Criterion(
        "performance",
        0.9,
        "Performance requirements and optimization",
        "Include performance requirements and optimization considerations.",
        score_performance,
    ),
    Criterion(
        "testing",
        0.9,
        "Testing requirements and validation",
        "Specify testing requirements and coverage expectations.",
        score_testing,
    ),
    Criterion(
        "output_format",
        1.0,
        "Clear specification of desired output format",
        "Define the exact output format and structure expected.",
        score_output_format,
    ),
    Criterion(
        "deployment",
        0.8,
        "Deployment and production readiness",
        "Add production deployment considerations and requirements.",
        score_deployment,
    ),
)


class HeuristicCriteriaScorer:
    """Scores texts with `CRITERIA`.

    With ``defer_to_judge=True`` no scoring happens; every call returns a
    `Deferred` whose request describes the task for an external judge.
    """

    def __init__(
        self,
        criteria: tuple[Criterion, ...] = CRITERIA,
        *,
        defer_to_judge: bool = False,
        judge_name: str = "prompt-evaluation-judge",
    ) -> None:
        if not criteria:
            raise ValueError("at least one criterion is required")
        self._criteria = criteria
        self._defer_to_judge = defer_to_judge
        self._judge_name = judge_name

    @property
    def criteria(self) -> tuple[Criterion, ...]:
        return self._criteria

    async def evaluate(self, text: str) -> Evaluation:
        if self._defer_to_judge:
            return self._judge_request(text)
        return self.score(text)

    def score(self, text: str) -> EvaluationResult:
        """Score ``text`` synchronously."""
        details: dict[str, CriterionScore] = {}
        weighted_total = 0.0
        weight_total = 0.0
        for criterion in self._criteria:
            raw = round(criterion.scorer(text), 4)
            details[criterion.name] = CriterionScore(
                raw_score=raw, weight=criterion.weight, description=criterion.description
            )
            weighted_total += raw * criterion.weight
            weight_total += criterion.weight

        overall = round(weighted_total / weight_total * 100, 2)
        return EvaluationResult(
            overall_score=min(overall, 100.0),
            criteria=details,
            recommendations=self._recommendations(details),
        )

    def _recommendations(self, details: dict[str, CriterionScore]) -> tuple[str, ...]:
        ranked: list[tuple[int, int, str]] = []
        for position, criterion in enumerate(self._criteria):
            detail = details[criterion.name]
            if detail.raw_score >= NEEDS_IMPROVEMENT_BELOW:
                continue
            impact = round((1 - detail.raw_score) * detail.weight * 10)
            ranked.append(
                (
                    -impact,
                    position,
                    f"{criterion.name}: {criterion.recommendation} "
                    f"(+{impact}% potential improvement)",
                )
            )
        return tuple(message for _, _, message in sorted(ranked))

    def _judge_request(self, text: str) -> Deferred:
        log.debug("Deferring evaluation to external judge '%s'", self._judge_name)
        return Deferred(
            reason="external_judge",
            request={
                "judge": self._judge_name,
                "text": text,
                "criteria": {
                    c.name: {"weight": c.weight, "description": c.description}
                    for c in self._criteria
                },
                "scale": [0, 100],
            },
        )
