"""Keyword-driven context classification."""

from __future__ import annotations

import re

from prompt_orchestrator.core.methods import Complexity
from prompt_orchestrator.core.types import Context

REACT_KEYWORDS: tuple[str, ...] = (
    "react",
    "component",
    "jsx",
    "tsx",
    "hook",
    "usestate",
    "useeffect",
    "props",
    "state",
    "redux",
    "next.js",
)

API_KEYWORDS: tuple[str, ...] = (
    "api",
    "endpoint",
    "rest",
    "graphql",
    "backend",
    "server",
    "route",
    "request",
    "response",
    "fastapi",
)

_FRONTEND_RE = re.compile(r"ui|frontend|component|css|html", re.IGNORECASE)
_BACKEND_RE = re.compile(r"backend|server|database|auth", re.IGNORECASE)
_CONNECTIVES_RE = re.compile(r"and|also|additionally|furthermore", re.IGNORECASE)
_TECHNICAL_VERBS_RE = re.compile(
    r"implement|optimize|refactor|architect|design", re.IGNORECASE
)

# Declaration order is the order frameworks are reported in.
FRAMEWORK_PATTERNS: dict[str, re.Pattern[str]] = {
    "React": re.compile(r"react|jsx|tsx", re.IGNORECASE),
    "Vue": re.compile(r"vue", re.IGNORECASE),
    "Angular": re.compile(r"angular", re.IGNORECASE),
    "Next.js": re.compile(r"next\.?js", re.IGNORECASE),
    "Express": re.compile(r"express", re.IGNORECASE),
    "FastAPI": re.compile(r"fastapi", re.IGNORECASE),
    "Django": re.compile(r"django", re.IGNORECASE),
    "Rails": re.compile(r"rails|ruby", re.IGNORECASE),
}

HIGH_COMPLEXITY_WORDS = 100
MEDIUM_COMPLEXITY_WORDS = 50


class KeywordContextClassifier:
    """Classifies a text by keyword and pattern matching.

    Matching is substring based and deliberately permissive; a text that
    mentions "state" counts as React context.
    """

    async def classify(self, text: str) -> Context:
        lowered = text.lower()
        is_react = any(k in lowered for k in REACT_KEYWORDS)
        is_api = any(k in lowered for k in API_KEYWORDS)
        frameworks = detect_frameworks(text)
        return Context(
            is_react=is_react,
            has_frontend=is_react or _FRONTEND_RE.search(text) is not None,
            is_api=is_api,
            has_backend=is_api or _BACKEND_RE.search(text) is not None,
            complexity=assess_complexity(text),
            frameworks=frameworks,
            project_type=infer_project_type(text, frameworks),
        )


def assess_complexity(text: str) -> Complexity:
    """Classify complexity from length, connectives and technical verbs."""
    word_count = len(text.split())
    many_requirements = len(_CONNECTIVES_RE.findall(text)) > 2
    technical = len(_TECHNICAL_VERBS_RE.findall(text)) > 1
    if word_count > HIGH_COMPLEXITY_WORDS or many_requirements or technical:
        return Complexity.HIGH
    if word_count > MEDIUM_COMPLEXITY_WORDS:
        return Complexity.MEDIUM
    return Complexity.LOW


def detect_frameworks(text: str) -> tuple[str, ...]:
    return tuple(
        name for name, pattern in FRAMEWORK_PATTERNS.items() if pattern.search(text)
    )


def infer_project_type(text: str, frameworks: tuple[str, ...]) -> str:
    if "React" in frameworks or "Vue" in frameworks:
        return "frontend"
    if "FastAPI" in frameworks or "Express" in frameworks:
        return "backend"
    if "full-stack" in text.lower():
        return "fullstack"
    return "general"
