"""Path-based module categorization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from codepulse.core.models import Category


@dataclass(frozen=True)
class CategoryRule:
    category: Category
    markers: tuple[str, ...]


# First match wins, so a core directory outranks any domain directory nested in it.
DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(Category.CORE, ("/pensent-core/", "/core/", "/kernel/")),
    CategoryRule(Category.DOMAIN_A, ("/chess/", "/domain-a/", "/domain_a/")),
    CategoryRule(Category.DOMAIN_B, ("/pensent-code/", "/code-analysis/", "/domain-b/", "/domain_b/")),
    CategoryRule(Category.TYPE_DEFS, ("/types/", "/types.", ".types.", "/typings/", "/interfaces/")),
    CategoryRule(Category.HOOKS, ("/hooks/",)),
    CategoryRule(Category.STORES, ("/stores/", "/store/", "/state/", "/store.", ".store.")),
    CategoryRule(Category.PAGES, ("/pages/", "/views/", "/routes/")),
    CategoryRule(Category.UI, ("/components/", "/ui/", "/widgets/")),
    CategoryRule(Category.UTILITY, ("/utils/", "/helpers/", "/lib/")),
)


class Categorizer:
    """Maps a module path to a Category. Unmatched paths are utilities."""

    def __init__(self, rules: Sequence[CategoryRule] = DEFAULT_RULES):
        self.rules = tuple(
            CategoryRule(r.category, tuple(m.lower() for m in r.markers)) for r in rules
        )

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, Iterable[str]]) -> Categorizer:
        """Replace the markers of selected categories, keeping rule order."""
        if not overrides:
            return cls()
        rules = []
        for rule in DEFAULT_RULES:
            markers = overrides.get(rule.category.value)
            rules.append(CategoryRule(rule.category, tuple(markers)) if markers is not None else rule)
        return cls(rules)

    def categorize(self, path: str) -> Category:
        lookup = "/" + path.replace("\\", "/").lower().lstrip("/")
        for rule in self.rules:
            if any(marker in lookup for marker in rule.markers):
                return rule.category
        return Category.UTILITY

