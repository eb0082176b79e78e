"""LLM-backed candidate generation using the Gemini API.

The client is created lazily so that constructing the generator never needs
credentials; tests inject a client exposing ``aio.models.generate_content``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import types

from prompt_orchestrator.core.exceptions import CandidateError
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

DEFAULT_MODEL = "gemini-2.0-flash"

SYSTEM_INSTRUCTIONS: dict[ImprovementMethod, str] = {
    ImprovementMethod.GENERAL_OPTIMIZER: (
        "You rewrite prompts for clarity and structure. Add explicit "
        "requirements and success criteria. Keep the author's intent."
    ),
    ImprovementMethod.FRONTEND_SPECIALIST: (
        "You rewrite frontend development prompts. Add component structure, "
        "state management expectations and accessibility requirements."
    ),
    ImprovementMethod.API_EXPERT: (
        "You rewrite API and backend prompts. Add error handling, input "
        "validation and response format requirements."
    ),
    ImprovementMethod.LLM_COORDINATOR: (
        "You rewrite complex prompts. Add step-by-step reasoning guidance and "
        "two or three concrete examples."
    ),
}


def _describe(context: Context) -> str:
    parts = [f"complexity={context.complexity.value}", f"type={context.project_type}"]
    if context.frameworks:
        parts.append(f"frameworks={', '.join(context.frameworks)}")
    return "; ".join(parts)


class GeminiCandidateGenerator:
    """Generates candidates by asking a Gemini model to rewrite the text.

    Args:
        client: A ``genai.Client`` (or compatible object). Created on first
            use when omitted.
        model: Model name passed to ``generate_content``.
        scorer: Used to estimate the improvement of the rewritten text.
        api_key: Passed to ``genai.Client`` when the client is created here.
        temperature: Sampling temperature for generation.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str = DEFAULT_MODEL,
        scorer: CriteriaScorer | None = None,
        api_key: str | None = None,
        temperature: float = 0.3,
    ) -> None:
        self._client = client
        self._model = model
        self._scorer = scorer or HeuristicCriteriaScorer()
        self._api_key = api_key
        self._temperature = temperature

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(
        self, text: str, context: Context, method: ImprovementMethod
    ) -> ImprovementCandidate:
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTIONS[method],
            temperature=self._temperature,
            response_mime_type="text/plain",
        )
        contents = (
            f"Context: {_describe(context)}\n\n"
            "Rewrite the following prompt. Return only the improved prompt.\n\n"
            f"{text}"
        )
        response = await self.client.aio.models.generate_content(
            model=self._model, contents=contents, config=config
        )
        rewritten = (getattr(response, "text", None) or "").strip()
        if not rewritten:
            raise CandidateError(
                "Model returned an empty rewrite", method=method.value
            )

        before = await self._scorer.evaluate(text)
        after = await self._scorer.evaluate(rewritten)
        if isinstance(before, EvaluationResult) and isinstance(after, EvaluationResult):
            delta = round(after.overall_score - before.overall_score, 2)
        else:
            delta = 0.0
            log.debug("Scorer deferred; reporting zero estimated improvement")

        return ImprovementCandidate(
            text=rewritten,
            method=method,
            score_improvement=delta,
            reasoning=f"Rewritten by {self._model}",
        )
