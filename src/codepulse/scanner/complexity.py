"""Structural complexity estimation from raw module text.

The estimator counts three token families with regular expressions
(function definitions, conditionals, loops) plus the line count, then
classifies the module into a complexity band::

    score            = 2 * conditionals + 3 * loops + 0.5 * functions
    lines_per_func   = lines / functions       (lines when functions == 0)

Bands are checked from ``critical`` down to ``low``; the first band whose
condition holds wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from codepulse.core.models import Complexity

TokenPattern = tuple[str, "re.Pattern[str]"]


def _compile(pairs: Sequence[tuple[str, str]]) -> tuple[TokenPattern, ...]:
    return tuple((name, re.compile(rx, re.MULTILINE)) for name, rx in pairs)


FUNCTION_PATTERNS = _compile([
    ("js_function", r"\bfunction\b"),
    ("arrow", r"=>"),
    ("py_def", r"^[ \t]*(?:async[ \t]+)?def[ \t]+\w+"),
])

CONDITIONAL_PATTERNS = _compile([
    ("if", r"\bif\b"),
    ("elif", r"\belif\b"),
    ("case", r"\bcase\b"),
    ("logical_and", r"&&"),
    ("logical_or", r"\|\|"),
    ("nullish", r"\?\?"),
])

LOOP_PATTERNS = _compile([
    ("for", r"\bfor\b"),
    ("while", r"\bwhile\b"),
    ("for_each", r"\.forEach\("),
    ("map", r"\.map\("),
    ("filter", r"\.filter\("),
    ("reduce", r"\.reduce\("),
])


@dataclass(frozen=True)
class ComplexityReport:
    functions: int
    conditionals: int
    loops: int
    lines: int
    score: float
    lines_per_function: float
    complexity: Complexity


def count_lines(text: str) -> int:
    return len(text.splitlines())


def _count(patterns: Sequence[TokenPattern], text: str) -> int:
    return sum(len(rx.findall(text)) for _, rx in patterns)


def classify(score: float, lines: int, lines_per_function: float) -> Complexity:
    """Map raw measurements to a band, checking from highest to lowest."""
    if score > 100 or lines > 500 or lines_per_function > 80:
        return Complexity.CRITICAL
    if score > 50 or lines > 300 or lines_per_function > 50:
        return Complexity.HIGH
    if score > 20 or lines > 150:
        return Complexity.MEDIUM
    return Complexity.LOW


class ComplexityEstimator:
    """Scores a module's structural complexity from its text."""

    def __init__(
        self,
        function_patterns: Sequence[TokenPattern] = FUNCTION_PATTERNS,
        conditional_patterns: Sequence[TokenPattern] = CONDITIONAL_PATTERNS,
        loop_patterns: Sequence[TokenPattern] = LOOP_PATTERNS,
    ):
        self.function_patterns = tuple(function_patterns)
        self.conditional_patterns = tuple(conditional_patterns)
        self.loop_patterns = tuple(loop_patterns)

    def measure(self, text: str) -> ComplexityReport:
        functions = _count(self.function_patterns, text)
        conditionals = _count(self.conditional_patterns, text)
        loops = _count(self.loop_patterns, text)
        lines = count_lines(text)

        score = 2 * conditionals + 3 * loops + 0.5 * functions
        # A functionless file is judged by its full length.
        lines_per_function = lines / functions if functions else float(lines)

        return ComplexityReport(
            functions=functions,
            conditionals=conditionals,
            loops=loops,
            lines=lines,
            score=score,
            lines_per_function=lines_per_function,
            complexity=classify(score, lines, lines_per_function),
        )
