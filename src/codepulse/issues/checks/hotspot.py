"""Complexity hotspot rule."""

from __future__ import annotations

from typing import Sequence

from codepulse.core.models import Complexity, Issue, IssueType, ModuleRecord, Severity
from codepulse.issues.checks.base import BaseCheck, file_name


class ComplexityHotspotCheck(BaseCheck):
    """Large critical-complexity modules that have not already been split up."""

    check_id = "CH-001"
    issue_type = IssueType.COMPLEXITY_HOTSPOT
    severity = Severity.HIGH
    description = "Critical complexity in a large module"

    @property
    def limit(self) -> int:
        return self.config.max_hotspots

    def is_exempt(self, module: ModuleRecord) -> bool:
        if module.has_superseding_modules:
            return True
        name = file_name(module.path)
        return any(
            name == exempt or module.path.endswith("/" + exempt.lstrip("/"))
            for exempt in self.config.refactored_exemptions
        )

    def run(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        eligible = [
            m for m in modules
            if m.complexity == Complexity.CRITICAL
            and m.lines_of_code > self.config.hotspot_min_lines
            and not self.is_exempt(m)
        ]
        eligible = sorted(eligible, key=lambda m: -m.lines_of_code)

        issues = []
        for module in eligible[: self.limit]:
            issues.append(self._make_issue(
                title=f"Complexity Hotspot: {file_name(module.path)}",
                description=(
                    f"{module.lines_of_code} lines with critical complexity. "
                    "High cognitive load and maintenance risk."
                ),
                remediation=(
                    "Split into smaller modules:\n"
                    "- Extract type definitions to a separate file\n"
                    "- Move helper functions to utils\n"
                    "- Create a dedicated test file\n"
                    "- Break the remainder into 3-4 focused files under 200 lines each"
                ),
                impact="Reduces bug surface area by ~40%, improves onboarding time",
                subject_path=module.path,
                metric=float(module.lines_of_code),
            ))
        return issues
