"""Structural pattern extraction over high-scoring texts."""

from __future__ import annotations

from collections.abc import Sequence
import re

from prompt_orchestrator.core.types import HistoryEntry, Pattern, PatternReport

FEATURES: tuple[tuple[str, str, re.Pattern[str]], ...] = (
    ("xml_tags", "Sections wrapped in XML-style tags", re.compile(r"<\w+>.*?</\w+>", re.S)),
    ("numbered_lists", "Numbered step lists", re.compile(r"^\s*\d+\.\s+\S", re.M)),
    (
        "examples",
        "Concrete examples",
        re.compile(r"<example>|Example:|For example|e\.g\.", re.I),
    ),
    (
        "explicit_requirements",
        "Explicit requirement keywords",
        re.compile(r"\bMUST\b|\bSHOULD\b|\bREQUIRED\b|<requirements>"),
    ),
    (
        "output_format",
        "A specified output format",
        re.compile(r"output format|<output>|\bJSON\b|```", re.I),
    ),
    (
        "error_handling",
        "Error handling instructions",
        re.compile(r"error|exception|edge case", re.I),
    ),
)


class FeaturePatternExtractor:
    """Reports how often each structural feature occurs across entries.

    Features below ``min_frequency`` are omitted. Patterns are ordered by
    descending frequency, ties in feature declaration order.
    """

    def __init__(self, min_frequency: float = 0.0) -> None:
        if not 0.0 <= min_frequency <= 1.0:
            raise ValueError("min_frequency must be within [0.0, 1.0]")
        self._min_frequency = min_frequency

    async def extract(self, entries: Sequence[HistoryEntry]) -> PatternReport:
        if not entries:
            return PatternReport()

        total = len(entries)
        found: list[Pattern] = []
        for name, description, pattern in FEATURES:
            hits = sum(1 for e in entries if pattern.search(e.text))
            frequency = hits / total
            if hits and frequency >= self._min_frequency:
                found.append(Pattern(name, description, round(frequency, 4)))

        found.sort(key=lambda p: -p.frequency)
        return PatternReport(
            patterns=tuple(found),
            entries_analyzed=total,
            average_score=round(sum(e.score for e in entries) / total, 2),
        )
