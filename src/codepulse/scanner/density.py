"""Pattern density scoring: how strongly a module speaks the domain vocabulary."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from codepulse.core.models import Category
from codepulse.scanner.complexity import count_lines

# Signal vocabulary. Each entry is (name, regex); matching is case-insensitive.
DEFAULT_VOCABULARY: tuple[tuple[str, str], ...] = (
    ("temporal_signature", r"temporal_?signature"),
    ("quadrant_profile", r"quadrant_?profile"),
    ("temporal_flow", r"temporal_?flow"),
    ("fingerprint", r"fingerprint"),
    ("archetype", r"archetype"),
    ("signature", r"(?<!temporal)(?<!temporal_)signature"),
    ("pattern", r"pattern"),
    ("prediction", r"predict(?:ion|or|ive)?"),
    ("trajectory", r"trajector(?:y|ies)"),
    ("momentum", r"momentum"),
    ("intensity", r"intensity"),
    ("domain_adapter", r"domain_?adapter"),
)

_IMPORT_PREFIX = r"(?:^[ \t]*(?:import|from)[ \t]+|require\(|\bfrom[ \t]+)['\"]?"

DEFAULT_CORE_IMPORT = _IMPORT_PREFIX + r"[@\w./-]*\b(?:pensent-)?core\b"
DEFAULT_UI_IMPORT = _IMPORT_PREFIX + r"[@\w./-]*[/.]ui\b"

CORE_IMPORT_BOOST = 0.15
UI_IMPORT_BOOST = 0.10
CORE_CATEGORY_BOOST = 0.20


@dataclass(frozen=True)
class DensityBreakdown:
    hits: int
    lines: int
    base: float
    imports_core: bool
    imports_ui: bool
    density: float


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class PatternDensityScorer:
    """Scores a module in [0, 1] from vocabulary hits plus import and category boosts."""

    def __init__(
        self,
        vocabulary: Sequence[tuple[str, str]] = DEFAULT_VOCABULARY,
        core_import: str = DEFAULT_CORE_IMPORT,
        ui_import: str = DEFAULT_UI_IMPORT,
    ):
        self.vocabulary = tuple(
            (name, re.compile(rx, re.IGNORECASE)) for name, rx in vocabulary
        )
        self.core_import = re.compile(core_import, re.IGNORECASE | re.MULTILINE)
        self.ui_import = re.compile(ui_import, re.IGNORECASE | re.MULTILINE)

    def count_hits(self, text: str) -> int:
        return sum(len(rx.findall(text)) for _, rx in self.vocabulary)

    def breakdown(self, text: str, category: Category) -> DensityBreakdown:
        hits = self.count_hits(text)
        lines = count_lines(text)
        base = min(hits / (lines * 0.1), 1.0) if lines else 0.0

        imports_core = bool(self.core_import.search(text))
        imports_ui = bool(self.ui_import.search(text))

        density = base
        if imports_core:
            density += CORE_IMPORT_BOOST
        if imports_ui:
            density += UI_IMPORT_BOOST
        if category == Category.CORE:
            density += CORE_CATEGORY_BOOST

        return DensityBreakdown(
            hits=hits,
            lines=lines,
            base=base,
            imports_core=imports_core,
            imports_ui=imports_ui,
            density=clamp(density),
        )

    def score(self, text: str, category: Category) -> float:
        return self.breakdown(text, category).density
