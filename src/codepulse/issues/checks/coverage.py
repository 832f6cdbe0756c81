"""Project-wide coverage rules: missing domain categories and an underweight core."""

from __future__ import annotations

from typing import Sequence

from codepulse.core.models import Category, Issue, IssueType, ModuleRecord, Severity
from codepulse.issues.checks.base import BaseCheck


class DomainCoverageCheck(BaseCheck):
    """Expected domain categories with no modules at all."""

    check_id = "DC-001"
    issue_type = IssueType.MISSING_COVERAGE
    severity = Severity.MEDIUM
    description = "Expected domain category has no modules"

    @property
    def limit(self) -> int:
        return self.config.max_missing_coverage

    def run(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        if not modules:
            return []
        present = {m.category for m in modules}
        issues = []
        for value in self.config.expected_domains:
            category = Category(value)
            if category in present:
                continue
            issues.append(self._make_issue(
                title=f"Missing Domain Coverage: {category.value}",
                description=(
                    f"No modules were categorized as {category.value}. The core engine "
                    "supports this domain but no adapter implements it."
                ),
                remediation=(
                    f"Create a {category.value} adapter package with its own types, "
                    "signature extraction and adapter modules. Follow the existing domain "
                    "adapter layout."
                ),
                impact=f"Unlocks the {category.value} vertical for cross-domain analysis",
                suffix=category.value,
            ))
            if len(issues) >= self.limit:
                break
        return issues


class CoreRatioCheck(BaseCheck):
    """Core engine modules make up too small a share of the codebase."""

    check_id = "CR-001"
    issue_type = IssueType.REFACTOR_NEEDED
    severity = Severity.LOW
    description = "Core module ratio below threshold"

    def is_core_family(self, module: ModuleRecord) -> bool:
        if module.category == Category.CORE:
            return True
        lookup = "/" + module.path.lower()
        return any(marker.lower() in lookup for marker in self.config.core_families)

    def run(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        if not modules:
            return []
        core_count = sum(1 for m in modules if self.is_core_family(m))
        ratio = core_count / len(modules)
        if ratio >= self.config.coverage_ratio:
            return []
        return [self._make_issue(
            title="Core Engine Underweight",
            description=(
                f"Core modules are only {round(ratio * 100)}% of the codebase "
                f"({core_count} of {len(modules)}). More domain-agnostic abstractions "
                "would improve reuse."
            ),
            remediation=(
                "Extract common patterns:\n"
                "- Move archetype matching logic into the core\n"
                "- Create universal visualization primitives\n"
                "- Abstract prediction algorithms away from any single domain"
            ),
            impact="Faster new domain adapter development",
            suffix="core-ratio",
            metric=ratio,
        )]
