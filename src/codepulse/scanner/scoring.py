"""Aggregate statistics over scanned modules, plus the default prediction collaborator."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, Sequence

from codepulse.core.models import Category, ModuleRecord, Prediction

ARCHETYPE_DESCRIPTIONS = {
    "empty": "No scannable modules were found",
    "platform_core": "Dominated by a domain-agnostic core engine",
    "hybrid_innovation": "Combines domain-specific implementations with a universal core",
    "domain_specialist": "Concentrated in a single domain implementation",
    "interface_driven": "Weighted toward presentation components and pages",
    "balanced_modular": "Spread evenly across categories with no dominant layer",
}

_DOMAINS = (Category.DOMAIN_A, Category.DOMAIN_B)
_INTERFACE = (Category.UI, Category.PAGES, Category.HOOKS)


def sort_modules(modules: Sequence[ModuleRecord]) -> list[ModuleRecord]:
    """Category priority first, then highest pattern density, then path."""
    return sorted(
        modules,
        key=lambda m: (m.category.priority, -m.pattern_density, m.path),
    )


def compute_category_profile(modules: Sequence[ModuleRecord]) -> dict[Category, float]:
    """Fraction of total lines per observed category; zeros when there are no lines."""
    totals: dict[Category, int] = {}
    for m in modules:
        totals[m.category] = totals.get(m.category, 0) + m.lines_of_code

    total_lines = sum(totals.values())
    if total_lines == 0:
        return {category: 0.0 for category in totals}
    return {category: lines / total_lines for category, lines in totals.items()}


def aggregate_density(modules: Sequence[ModuleRecord]) -> float:
    if not modules:
        return 0.0
    return sum(m.pattern_density for m in modules) / len(modules)


def classify_archetype(profile: dict[Category, float]) -> str:
    """Coarse label for a category mix."""
    if not profile or not any(profile.values()):
        return "empty"
    core = profile.get(Category.CORE, 0.0)
    domains = [c for c in _DOMAINS if profile.get(c, 0.0) > 0]
    interface = sum(profile.get(c, 0.0) for c in _INTERFACE)

    if core > 0.5:
        return "platform_core"
    if core > 0 and len(domains) >= 2:
        return "hybrid_innovation"
    if any(profile.get(c, 0.0) > 0.5 for c in _DOMAINS):
        return "domain_specialist"
    if interface > 0.5:
        return "interface_driven"
    return "balanced_modular"


def to_base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


@dataclass(frozen=True)
class Signature:
    archetype: str
    archetype_description: str
    fingerprint: str
    prediction: Prediction


class SignaturePredictor(Protocol):
    def predict(
        self,
        modules: Sequence[ModuleRecord],
        profile: dict[Category, float],
        density: float,
        version: int,
    ) -> Signature:
        ...


class HeuristicPredictor:
    """Default prediction collaborator used when none is injected."""

    def __init__(self, clock=time.time):
        self._clock = clock

    def fingerprint(self, version: int) -> str:
        millis = int(self._clock() * 1000)
        return f"EP-{version}-{to_base36(millis)}"

    def predict(
        self,
        modules: Sequence[ModuleRecord],
        profile: dict[Category, float],
        density: float,
        version: int,
    ) -> Signature:
        archetype = classify_archetype(profile)
        core_count = sum(1 for m in modules if m.category == Category.CORE)
        confidence = density * 0.95
        outcome = "success" if confidence >= 0.5 else "uncertain"
        reasoning = (
            f"Pattern density {density * 100:.0f}% across {len(modules)} modules, "
            f"{core_count} of them in the core engine."
        )
        return Signature(
            archetype=archetype,
            archetype_description=ARCHETYPE_DESCRIPTIONS[archetype],
            fingerprint=self.fingerprint(version),
            prediction=Prediction(outcome=outcome, confidence=confidence, reasoning=reasoning),
        )
