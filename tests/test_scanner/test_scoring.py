"""Tests for aggregate scoring and the default predictor."""

from __future__ import annotations

import pytest

from codepulse.core.models import Category, Complexity, ModuleRecord
from codepulse.scanner.scoring import (
    ARCHETYPE_DESCRIPTIONS,
    HeuristicPredictor,
    aggregate_density,
    classify_archetype,
    compute_category_profile,
    sort_modules,
    to_base36,
)


def _module(path: str, category: Category, lines: int = 10, density: float = 0.5) -> ModuleRecord:
    return ModuleRecord(
        path=path,
        category=category,
        lines_of_code=lines,
        complexity=Complexity.LOW,
        pattern_density=density,
        description="",
    )


class TestCategoryProfile:
    def test_fractions_sum_to_one(self):
        modules = [
            _module("a.ts", Category.CORE, 30),
            _module("b.ts", Category.UI, 50),
            _module("c.ts", Category.UI, 20),
        ]
        profile = compute_category_profile(modules)

        assert profile[Category.CORE] == pytest.approx(0.3)
        assert profile[Category.UI] == pytest.approx(0.7)
        assert sum(profile.values()) == pytest.approx(1.0)

    def test_zero_lines_gives_zeros(self):
        profile = compute_category_profile([_module("a.ts", Category.UTILITY, 0)])
        assert profile == {Category.UTILITY: 0.0}

    def test_no_modules(self):
        assert compute_category_profile([]) == {}


class TestAggregateDensity:
    def test_mean(self):
        modules = [_module("a.ts", Category.UI, density=0.2), _module("b.ts", Category.UI, density=0.6)]
        assert aggregate_density(modules) == pytest.approx(0.4)

    def test_empty(self):
        assert aggregate_density([]) == 0.0


class TestSortModules:
    def test_priority_then_density_then_path(self):
        modules = [
            _module("z.ts", Category.UTILITY, density=0.9),
            _module("b.ts", Category.UI, density=0.1),
            _module("a.ts", Category.UI, density=0.1),
            _module("c.ts", Category.UI, density=0.8),
            _module("core.ts", Category.CORE, density=0.0),
        ]
        ordered = [m.path for m in sort_modules(modules)]
        assert ordered == ["core.ts", "c.ts", "a.ts", "b.ts", "z.ts"]


class TestArchetype:
    @pytest.mark.parametrize(
        "profile, expected",
        [
            ({}, "empty"),
            ({Category.UTILITY: 0.0}, "empty"),
            ({Category.CORE: 0.6, Category.UI: 0.4}, "platform_core"),
            ({Category.CORE: 0.2, Category.DOMAIN_A: 0.3, Category.DOMAIN_B: 0.5}, "hybrid_innovation"),
            ({Category.DOMAIN_A: 0.7, Category.UI: 0.3}, "domain_specialist"),
            ({Category.UI: 0.4, Category.PAGES: 0.3, Category.UTILITY: 0.3}, "interface_driven"),
            ({Category.UTILITY: 0.5, Category.UI: 0.2, Category.STORES: 0.3}, "balanced_modular"),
        ],
    )
    def test_labels(self, profile, expected):
        assert classify_archetype(profile) == expected

    def test_every_label_is_described(self):
        for label in ("empty", "platform_core", "hybrid_innovation", "domain_specialist",
                      "interface_driven", "balanced_modular"):
            assert ARCHETYPE_DESCRIPTIONS[label]


class TestPredictor:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"

    def test_fingerprint_embeds_version_and_clock(self):
        predictor = HeuristicPredictor(clock=lambda: 1.0)
        assert predictor.fingerprint(3) == "EP-3-RS"

    def test_confident_prediction(self):
        predictor = HeuristicPredictor(clock=lambda: 1.0)
        modules = [_module("core/a.ts", Category.CORE, density=0.6)]
        signature = predictor.predict(modules, {Category.CORE: 1.0}, 0.6, 1)

        assert signature.archetype == "platform_core"
        assert signature.prediction.outcome == "success"
        assert signature.prediction.confidence == pytest.approx(0.57)

    def test_uncertain_prediction(self):
        predictor = HeuristicPredictor(clock=lambda: 1.0)
        signature = predictor.predict([], {}, 0.4, 1)

        assert signature.archetype == "empty"
        assert signature.prediction.outcome == "uncertain"
