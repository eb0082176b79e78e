"""Closed vocabularies used by method selection.

Improvement methods and context flags are enums rather than free-form strings
so that selection tables are validated when configuration is resolved and
generator registries can be checked for completeness.
"""

from __future__ import annotations

from enum import Enum


class Complexity(str, Enum):
    """Coarse complexity classification of an input text."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ImprovementMethod(str, Enum):
    """Identifiers of the candidate generation strategies."""

    GENERAL_OPTIMIZER = "general-optimizer"
    FRONTEND_SPECIALIST = "frontend-specialist"
    API_EXPERT = "api-expert"
    LLM_COORDINATOR = "llm-coordinator"

    @classmethod
    def parse(cls, value: str | ImprovementMethod) -> ImprovementMethod:
        """Parse a method from its enum value or member name."""
        if isinstance(value, ImprovementMethod):
            return value
        normalized = str(value).strip()
        for member in cls:
            if normalized in (member.value, member.name, member.name.lower()):
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown improvement method {value!r}; expected one of: {valid}")


class ContextFlag(str, Enum):
    """Keys of the ``agent_selection`` table.

    Declaration order is the order in which active flags contribute methods;
    ``DEFAULT`` only applies when no other flag contributed any.
    """

    COMPLEX = "complex"
    REACT = "react"
    FRONTEND = "frontend"
    API = "api"
    BACKEND = "backend"
    DEFAULT = "default"

    @classmethod
    def parse(cls, value: str | ContextFlag) -> ContextFlag:
        """Parse a flag from its enum value or member name."""
        if isinstance(value, ContextFlag):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if normalized == member.value:
                return member
        valid = ", ".join(f.value for f in cls)
        raise ValueError(f"Unknown context flag {value!r}; expected one of: {valid}")


# Flags that are derived from a Context, in contribution order.
SELECTION_ORDER: tuple[ContextFlag, ...] = (
    ContextFlag.COMPLEX,
    ContextFlag.REACT,
    ContextFlag.FRONTEND,
    ContextFlag.API,
    ContextFlag.BACKEND,
)
