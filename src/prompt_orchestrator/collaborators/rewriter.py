"""Rule-based candidate generation.

Each improvement method applies a fixed sequence of rewriting techniques.
Techniques are idempotent: a text that already carries a section is left
unchanged by the technique that would add it.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import re
from typing import TYPE_CHECKING

from prompt_orchestrator.core.methods import ImprovementMethod
from prompt_orchestrator.core.types import (
    Context,
    EvaluationResult,
    ImprovementCandidate,
)

from .criteria import HeuristicCriteriaScorer

if TYPE_CHECKING:
    from .base import CriteriaScorer

log = logging.getLogger(__name__)

# Used when the scorer cannot produce a numeric comparison.
DEFAULT_ESTIMATED_IMPROVEMENT = 10.0

type Technique = Callable[[str, Context], str]

_TASK_RE = re.compile(r"<task>.*</task>", re.IGNORECASE | re.DOTALL)
_TASK_CLOSE_RE = re.compile(r"</task>", re.IGNORECASE)


def _insert_section(text: str, section: str) -> str:
    """Insert ``section`` before a closing task tag, or append it."""
    if _TASK_CLOSE_RE.search(text):
        return _TASK_CLOSE_RE.sub(lambda _: f"{section}\n</task>", text, count=1)
    return f"{text.rstrip()}\n\n{section}"


def add_task_structure(text: str, context: Context) -> str:  # noqa: ARG001
    if _TASK_RE.search(text):
        return text
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    objective = lines[0] if lines else text.strip()
    details = "\n".join(lines[1:]) or "Follow the objective exactly as stated."
    return (
        "<task>\n"
        f"<objective>{objective}</objective>\n\n"
        f"<requirements>\n{details}\n</requirements>\n"
        "</task>"
    )


def add_success_criteria(text: str, context: Context) -> str:  # noqa: ARG001
    if re.search(r"success criteria|acceptance criteria|definition of done", text, re.I):
        return text
    section = (
        "<success_criteria>\n"
        "The work is complete when:\n"
        "- All stated requirements are met\n"
        "- Edge cases are handled explicitly\n"
        "- The output format matches the specification\n"
        "</success_criteria>"
    )
    return _insert_section(text, section)


def add_component_structure(text: str, context: Context) -> str:
    if "<component_structure>" in text:
        return text
    framework = next(
        (f for f in context.frameworks if f in ("React", "Vue", "Angular", "Next.js")),
        "the UI framework in use",
    )
    section = (
        "<component_structure>\n"
        f"- Split the UI into small, reusable components using {framework}\n"
        "- Keep state close to where it is used and pass data through props\n"
        "- Describe the props, state and events of every component\n"
        "</component_structure>"
    )
    return _insert_section(text, section)


def add_accessibility(text: str, context: Context) -> str:  # noqa: ARG001
    if re.search(r"accessib|a11y|aria", text, re.I):
        return text
    section = (
        "<accessibility>\n"
        "- Use semantic HTML and ARIA attributes where needed\n"
        "- Support keyboard navigation and visible focus states\n"
        "- Meet WCAG 2.1 AA contrast requirements\n"
        "</accessibility>"
    )
    return _insert_section(text, section)


def add_error_handling(text: str, context: Context) -> str:  # noqa: ARG001
    if "<error_handling>" in text:
        return text
    section = (
        "<error_handling>\n"
        "Consider and handle these scenarios:\n"
        "- Invalid input data or parameters\n"
        "- Network failures and timeouts\n"
        "- Authentication and authorization failures\n"
        "- Third-party service unavailability\n"
        "Return structured error responses with an error code and message.\n"
        "</error_handling>"
    )
    return _insert_section(text, section)


def add_validation(text: str, context: Context) -> str:  # noqa: ARG001
    if "<validation>" in text:
        return text
    section = (
        "<validation>\n"
        "- Validate and sanitize every request field before use\n"
        "- Verify types, ranges and required fields\n"
        "- Reject malformed requests with a 4xx status and a clear message\n"
        "</validation>"
    )
    return _insert_section(text, section)


def add_chain_of_thought(text: str, context: Context) -> str:  # noqa: ARG001
    if re.search(r"<thinking>|Let me think|step by step", text, re.I):
        return text
    section = (
        "<thinking>\n"
        "Approach this step by step:\n"
        "1. First, analyze the core requirements\n"
        "2. Then, identify the components needed\n"
        "3. Finally, verify that every requirement is met\n"
        "</thinking>"
    )
    return f"{section}\n\n{text.lstrip()}"


def add_examples(text: str, context: Context) -> str:  # noqa: ARG001
    if re.search(r"<example>|Example:|For example", text, re.I):
        return text
    section = (
        "<examples>\n"
        "<example>\n"
        "Input: a minimal, valid request\n"
        "Output: the expected result in the requested format\n"
        "</example>\n"
        "<example>\n"
        "Input: a request with a missing field\n"
        "Output: a clear validation error\n"
        "</example>\n"
        "</examples>"
    )
    return _insert_section(text, section)


METHOD_TECHNIQUES: dict[ImprovementMethod, tuple[Technique, ...]] = {
    ImprovementMethod.GENERAL_OPTIMIZER: (add_task_structure, add_success_criteria),
    ImprovementMethod.FRONTEND_SPECIALIST: (add_component_structure, add_accessibility),
    ImprovementMethod.API_EXPERT: (add_error_handling, add_validation),
    ImprovementMethod.LLM_COORDINATOR: (add_chain_of_thought, add_examples),
}


class TechniqueCandidateGenerator:
    """Rewrites texts with the techniques configured for each method.

    The estimated improvement is the scorer's delta between the rewritten and
    the original text.
    """

    def __init__(
        self,
        scorer: CriteriaScorer | None = None,
        techniques: dict[ImprovementMethod, tuple[Technique, ...]] | None = None,
    ) -> None:
        self._scorer = scorer or HeuristicCriteriaScorer()
        self._techniques = techniques or METHOD_TECHNIQUES

    async def generate(
        self, text: str, context: Context, method: ImprovementMethod
    ) -> ImprovementCandidate:
        techniques = self._techniques.get(method)
        if techniques is None:
            raise ValueError(f"No techniques configured for method '{method.value}'")

        rewritten = text
        applied = []
        for technique in techniques:
            updated = technique(rewritten, context)
            if updated != rewritten:
                applied.append(technique.__name__)
            rewritten = updated

        delta = await self._estimate(text, rewritten) if applied else 0.0
        return ImprovementCandidate(
            text=rewritten,
            method=method,
            score_improvement=delta,
            reasoning=f"Applied: {', '.join(applied)}" if applied else "No change",
        )

    async def _estimate(self, before: str, after: str) -> float:
        original = await self._scorer.evaluate(before)
        candidate = await self._scorer.evaluate(after)
        if isinstance(original, EvaluationResult) and isinstance(
            candidate, EvaluationResult
        ):
            return round(candidate.overall_score - original.overall_score, 2)
        log.debug("Scorer did not return numeric results; using default estimate")
        return DEFAULT_ESTIMATED_IMPROVEMENT
