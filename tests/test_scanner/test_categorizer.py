"""Tests for path-based categorization."""

from __future__ import annotations

import pytest

from codepulse.core.models import Category
from codepulse.scanner.categorizer import Categorizer


@pytest.fixture()
def categorizer() -> Categorizer:
    return Categorizer()


class TestCategorize:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("src/lib/pensent-core/engine.ts", Category.CORE),
            ("src/lib/chess/adapter.ts", Category.DOMAIN_A),
            ("src/lib/pensent-code/analyzer.ts", Category.DOMAIN_B),
            ("src/types/index.ts", Category.TYPE_DEFS),
            ("src/models.types.ts", Category.TYPE_DEFS),
            ("src/hooks/useScan.ts", Category.HOOKS),
            ("src/stores/session.ts", Category.STORES),
            ("src/app.store.ts", Category.STORES),
            ("src/pages/Index.tsx", Category.PAGES),
            ("src/components/ui/button.tsx", Category.UI),
            ("src/utils/format.ts", Category.UTILITY),
            ("main.ts", Category.UTILITY),
        ],
    )
    def test_default_rules(self, categorizer: Categorizer, path: str, expected: Category):
        assert categorizer.categorize(path) == expected

    def test_core_outranks_nested_domain(self, categorizer: Categorizer):
        assert categorizer.categorize("src/core/chess/bridge.ts") == Category.CORE

    def test_domain_outranks_type_file_inside_it(self, categorizer: Categorizer):
        assert categorizer.categorize("src/lib/chess/types.ts") == Category.DOMAIN_A

    def test_case_insensitive(self, categorizer: Categorizer):
        assert categorizer.categorize("SRC/Core/Engine.ts") == Category.CORE

    def test_store_marker_needs_a_boundary(self, categorizer: Categorizer):
        assert categorizer.categorize("src/restore.ts") == Category.UTILITY

    def test_leading_segment_matches(self, categorizer: Categorizer):
        assert categorizer.categorize("core/engine.py") == Category.CORE

    def test_windows_separators(self, categorizer: Categorizer):
        assert categorizer.categorize("src\\hooks\\useScan.ts") == Category.HOOKS


class TestOverrides:
    def test_override_replaces_markers(self):
        categorizer = Categorizer.with_overrides({"core": ["/engine/"]})

        assert categorizer.categorize("src/engine/run.ts") == Category.CORE
        assert categorizer.categorize("src/core/run.ts") == Category.UTILITY

    def test_untouched_categories_keep_defaults(self):
        categorizer = Categorizer.with_overrides({"core": ["/engine/"]})
        assert categorizer.categorize("src/hooks/useX.ts") == Category.HOOKS

    def test_empty_overrides_are_defaults(self):
        categorizer = Categorizer.with_overrides({})
        assert categorizer.categorize("src/pages/Home.tsx") == Category.PAGES
